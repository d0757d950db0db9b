"""Operational endpoints that move escrow forward (hold/release/sweep/disputes)."""

import hmac, json, hashlib, logging
from django.http import JsonResponse, HttpResponseBadRequest, HttpResponseForbidden
from django.views.decorators.csrf import csrf_exempt
from django.conf import settings
from core.constants import DisputeDecision
from core.services import get_ledger, get_sweeper

logger = logging.getLogger(__name__)


def health(request):
	return JsonResponse({"ok": True})


# --- Helpers -----------------------------------------------------------------

def _hmac_valid(raw_body: bytes, provided_sig: str, secret: str) -> bool:
	mac = hmac.new(key=secret.encode("utf-8"), msg=raw_body, digestmod=hashlib.sha256)
	expected = mac.hexdigest()
	try:
		return hmac.compare_digest(expected, provided_sig)
	except TypeError:
		return False


def _bearer_allowed(request, secret: str) -> bool:
	"""
	Shared-secret check for machine callers. Empty secret => allow all (dev).
	"""
	if not secret:
		return True
	header = request.headers.get("Authorization") or ""
	token = header[7:] if header.startswith("Bearer ") else ""
	return hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8"))


def _json_body(request):
	"""
	Parse the request body as a JSON object; None when it isn't one
	"""
	try:
		body = json.loads(request.body or b"{}")
	except ValueError:
		return None
	return body if isinstance(body, dict) else None


def _error(message: str, status: int) -> JsonResponse:
	return JsonResponse({"ok": False, "error": message}, status=status)


def _order_id_from(body) -> str:
	return str(body.get("orderId") or "").strip()


# --- Escrow triggers ---------------------------------------------------------

@csrf_exempt
def escrow_release(request):
	"""
	POST {orderId}: release one order's escrow to the vendor wallet if it is due
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	body = _json_body(request)
	if body is None:
		return _error("Invalid JSON", 400)
	order_id = _order_id_from(body)
	if not order_id:
		return _error("orderId is required", 400)

	try:
		outcome = get_ledger().release_escrow_if_eligible(order_id)
	except Exception:
		logger.exception("Escrow release failed for order %s", order_id)
		return _error("Escrow release failed", 500)
	return JsonResponse(outcome.to_payload(), status=outcome.http_status)


@csrf_exempt
def escrow_sweep(request):
	"""
	POST: cron entrypoint (every 1-2 minutes). Releases due holds, returns counters.
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	if not _bearer_allowed(request, getattr(settings, "ESCROW_CRON_SECRET", "")):
		return HttpResponseForbidden("Bad cron secret")

	try:
		report = get_sweeper().sweep_due_escrow()
	except Exception:
		logger.exception("Escrow sweep failed")
		return _error("Sweep failed", 500)
	return JsonResponse(report.to_payload())


@csrf_exempt
def escrow_dispute(request):
	"""
	POST {orderId}: freeze a held order pending dispute resolution
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	body = _json_body(request)
	if body is None:
		return _error("Invalid JSON", 400)
	order_id = _order_id_from(body)
	if not order_id:
		return _error("orderId is required", 400)

	try:
		outcome = get_ledger().open_dispute(order_id)
	except Exception:
		logger.exception("Opening dispute failed for order %s", order_id)
		return _error("Failed to open dispute", 500)
	return JsonResponse(outcome.to_payload(), status=outcome.http_status)


@csrf_exempt
def escrow_dispute_resolve(request):
	"""
	POST {orderId, decision}: decision is "release" or "refund"
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST only")
	if not _bearer_allowed(request, getattr(settings, "ESCROW_ADMIN_SECRET", "")):
		return HttpResponseForbidden("Not allowed")
	body = _json_body(request)
	if body is None:
		return _error("Invalid JSON", 400)
	order_id = _order_id_from(body)
	decision = str(body.get("decision") or "").strip().lower()
	if not order_id or decision not in DisputeDecision.values:
		return _error("orderId and decision (release|refund) required", 400)

	try:
		outcome = get_ledger().resolve_dispute(order_id, decision)
	except Exception:
		logger.exception("Resolving dispute failed for order %s", order_id)
		return _error("Failed to resolve dispute", 500)
	return JsonResponse(outcome.to_payload(), status=outcome.http_status)


# --- Webhooks ----------------------------------------------------------------

@csrf_exempt
def payment_webhook(request):
	"""
	Validates HMAC, then opens an escrow hold for the verified payment.
	Body format (example):
	{
	  "reference": "PSK_123",
	  "status": "success",            // anything else is acknowledged and ignored
	  "amountKobo": 500000,
	  "businessId": "biz_A",
	  "businessSlug": "ade-fabrics",  // optional
	  "currency": "NGN",              // optional
	  "provider": "paystack"          // optional
	}
	"""
	if request.method != "POST":
		return HttpResponseBadRequest("POST required")

	secret = getattr(settings, "PAYMENT_WEBHOOK_SECRET", None)
	signature = request.headers.get("X-Signature") or ""
	raw = request.body or b""
	try:
		payload = json.loads(raw.decode("utf-8"))
	except ValueError:
		return HttpResponseBadRequest("Invalid JSON")

	if not secret or not _hmac_valid(raw, signature, secret):
		return HttpResponseForbidden("Bad signature")
	if not isinstance(payload, dict):
		return HttpResponseBadRequest("Invalid JSON")

	if str(payload.get("status", "")).lower() != "success":
		return JsonResponse({"ok": True, "ignored": True})

	try:
		outcome = get_ledger().hold_payment(
			payload.get("reference"),
			payload.get("businessId"),
			payload.get("amountKobo"),
			business_slug=str(payload.get("businessSlug") or ""),
			currency=str(payload.get("currency") or "NGN"),
			provider=str(payload.get("provider") or "paystack"),
		)
	except Exception:
		# Don't leak internals; log exception server-side
		logger.exception("Payment webhook failed for reference %s", payload.get("reference"))
		return _error("Escrow confirm failed", 500)
	return JsonResponse(outcome.to_payload(), status=outcome.http_status)
