"""
HTTP surface: status-code mapping, cron/admin secrets and the signed payment webhook.
"""

import hashlib
import hmac
import json

import pytest

from core.adapters.store_adapter import TransientStoreError
from core.constants import now_ms
from core.models import Order, PaymentTransaction, Wallet

pytestmark = pytest.mark.django_db

MINUTE_MS = 60 * 1000


def post_json(client, url, body, **headers):
	return client.post(url, data=json.dumps(body), content_type="application/json", **headers)


def make_order(order_id="ord_1", **overrides):
	fields = dict(
		business_id="biz_A",
		amount_kobo=500_000,
		escrow_status="held",
		order_status="paid_held",
		hold_until_ms=now_ms() - MINUTE_MS,
	)
	fields.update(overrides)
	return Order.objects.create(id=order_id, **fields)


def sign(raw: bytes, secret: str) -> str:
	return hmac.new(secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()


# --- /api/escrow/release ------------------------------------------------------

def test_release_endpoint_releases_due_order(client):
	make_order("ord_1")
	Wallet.objects.create(business_id="biz_A", pending_balance_kobo=500_000)

	resp = post_json(client, "/api/escrow/release", {"orderId": "ord_1"})

	assert resp.status_code == 200
	assert resp.json() == {"ok": True, "message": "Released to vendor wallet"}
	assert Wallet.objects.get(pk="biz_A").available_balance_kobo == 500_000


def test_release_endpoint_reports_still_holding(client):
	hold_until = now_ms() + 10 * MINUTE_MS
	make_order("ord_1", hold_until_ms=hold_until)

	resp = post_json(client, "/api/escrow/release", {"orderId": "ord_1"})

	assert resp.status_code == 200
	assert resp.json() == {"ok": True, "message": "Still holding", "holdUntilMs": hold_until}


def test_release_endpoint_maps_not_found_to_404(client):
	resp = post_json(client, "/api/escrow/release", {"orderId": "ghost"})

	assert resp.status_code == 404
	assert resp.json() == {"ok": False, "error": "Order not found"}


def test_release_endpoint_maps_invalid_data_to_400(client):
	make_order("ord_1", amount_kobo=0)

	resp = post_json(client, "/api/escrow/release", {"orderId": "ord_1"})

	assert resp.status_code == 400
	assert resp.json() == {"ok": False, "error": "Invalid order data"}


@pytest.mark.parametrize("raw", [b"{}", b'{"orderId": "  "}', b"not json", b"[1, 2]"])
def test_release_endpoint_rejects_bad_bodies(client, raw):
	resp = client.post("/api/escrow/release", data=raw, content_type="application/json")

	assert resp.status_code == 400
	assert resp.json()["ok"] is False


def test_release_endpoint_is_post_only(client):
	assert client.get("/api/escrow/release").status_code == 400


def test_release_endpoint_hides_store_failures(client, monkeypatch):
	class BrokenLedger:
		def release_escrow_if_eligible(self, order_id):
			raise TransientStoreError("database is locked")

	monkeypatch.setattr("api.views_ops.get_ledger", lambda: BrokenLedger())

	resp = post_json(client, "/api/escrow/release", {"orderId": "ord_1"})

	assert resp.status_code == 500
	assert resp.json() == {"ok": False, "error": "Escrow release failed"}


# --- /api/escrow/sweep --------------------------------------------------------

def test_sweep_endpoint_returns_counters(client):
	for i in range(3):
		make_order(f"due_{i}", amount_kobo=1_000)
	for i in range(2):
		make_order(f"later_{i}", amount_kobo=1_000, hold_until_ms=now_ms() + 10 * MINUTE_MS)

	resp = client.post("/api/escrow/sweep")

	assert resp.status_code == 200
	assert resp.json() == {"ok": True, "scannedHeld": 5, "due": 3, "released": 3, "skipped": 0}


def test_sweep_endpoint_respects_batch_setting(client, settings):
	settings.ESCROW_SWEEP_BATCH_LIMIT = 2
	for i in range(5):
		make_order(f"due_{i}", amount_kobo=1_000)

	body = client.post("/api/escrow/sweep").json()

	assert (body["scannedHeld"], body["due"], body["released"]) == (5, 2, 2)
	assert Order.objects.filter(escrow_status="held").count() == 3


def test_sweep_endpoint_requires_cron_secret_when_configured(client, settings):
	settings.ESCROW_CRON_SECRET = "tick-tock"

	assert client.post("/api/escrow/sweep").status_code == 403
	assert client.post("/api/escrow/sweep", HTTP_AUTHORIZATION="Bearer wrong").status_code == 403
	assert client.post("/api/escrow/sweep", HTTP_AUTHORIZATION="Bearer tick-tock").status_code == 200


def test_sweep_endpoint_reports_scan_failure(client, monkeypatch):
	class BrokenSweeper:
		def sweep_due_escrow(self):
			raise TransientStoreError("store unavailable")

	monkeypatch.setattr("api.views_ops.get_sweeper", lambda: BrokenSweeper())

	resp = client.post("/api/escrow/sweep")

	assert resp.status_code == 500
	assert resp.json() == {"ok": False, "error": "Sweep failed"}


# --- /api/webhooks/payment ----------------------------------------------------

def test_signed_payment_opens_hold(client, settings):
	settings.PAYMENT_WEBHOOK_SECRET = "whsec"
	raw = json.dumps({"reference": "PSK_1", "status": "success", "amountKobo": 500_000, "businessId": "biz_A"}).encode()

	resp = client.post("/api/webhooks/payment", data=raw, content_type="application/json", HTTP_X_SIGNATURE=sign(raw, "whsec"))

	assert resp.status_code == 200
	body = resp.json()
	assert body["message"] == "Held in escrow"
	assert body["alreadyProcessed"] is False
	order = Order.objects.get(pk=body["orderId"])
	assert order.escrow_status == "held"
	assert PaymentTransaction.objects.get(pk="PSK_1").status == "held"
	assert Wallet.objects.get(pk="biz_A").pending_balance_kobo == 500_000

	replay = client.post("/api/webhooks/payment", data=raw, content_type="application/json", HTTP_X_SIGNATURE=sign(raw, "whsec"))
	assert replay.json()["alreadyProcessed"] is True
	assert Wallet.objects.get(pk="biz_A").pending_balance_kobo == 500_000


def test_payment_webhook_rejects_bad_signature(client, settings):
	settings.PAYMENT_WEBHOOK_SECRET = "whsec"
	raw = json.dumps({"reference": "PSK_1", "status": "success", "amountKobo": 100, "businessId": "biz_A"}).encode()

	resp = client.post("/api/webhooks/payment", data=raw, content_type="application/json", HTTP_X_SIGNATURE="deadbeef")

	assert resp.status_code == 403
	assert not Order.objects.exists()


def test_payment_webhook_ignores_unsuccessful_payments(client, settings):
	settings.PAYMENT_WEBHOOK_SECRET = "whsec"
	raw = json.dumps({"reference": "PSK_1", "status": "failed", "amountKobo": 100, "businessId": "biz_A"}).encode()

	resp = client.post("/api/webhooks/payment", data=raw, content_type="application/json", HTTP_X_SIGNATURE=sign(raw, "whsec"))

	assert resp.json() == {"ok": True, "ignored": True}
	assert not Order.objects.exists()


def test_payment_webhook_rejects_bad_amount(client, settings):
	settings.PAYMENT_WEBHOOK_SECRET = "whsec"
	raw = json.dumps({"reference": "PSK_1", "status": "success", "amountKobo": 0, "businessId": "biz_A"}).encode()

	resp = client.post("/api/webhooks/payment", data=raw, content_type="application/json", HTTP_X_SIGNATURE=sign(raw, "whsec"))

	assert resp.status_code == 400
	assert resp.json() == {"ok": False, "error": "Invalid payment data"}


# --- disputes -----------------------------------------------------------------

def test_dispute_then_refund_over_http(client, settings):
	settings.ESCROW_ADMIN_SECRET = "admin"
	make_order("ord_1", payment_reference="PSK_1")
	Wallet.objects.create(business_id="biz_A", pending_balance_kobo=500_000)

	opened = post_json(client, "/api/escrow/dispute", {"orderId": "ord_1"})
	assert opened.json() == {"ok": True, "message": "Dispute opened", "escrowStatus": "disputed"}

	released = post_json(client, "/api/escrow/release", {"orderId": "ord_1"})
	assert released.json() == {"ok": True, "message": "Not held", "escrowStatus": "disputed"}

	forbidden = post_json(client, "/api/escrow/dispute/resolve", {"orderId": "ord_1", "decision": "refund"})
	assert forbidden.status_code == 403

	resolved = post_json(
		client, "/api/escrow/dispute/resolve", {"orderId": "ord_1", "decision": "refund"},
		HTTP_AUTHORIZATION="Bearer admin",
	)
	assert resolved.json() == {"ok": True, "message": "Refunded to buyer"}
	assert Order.objects.get(pk="ord_1").escrow_status == "refunded"
	assert Wallet.objects.get(pk="biz_A").pending_balance_kobo == 0


def test_resolve_requires_known_decision(client):
	make_order("ord_1", escrow_status="disputed")

	resp = post_json(client, "/api/escrow/dispute/resolve", {"orderId": "ord_1", "decision": "split"})

	assert resp.status_code == 400


def test_dispute_on_missing_order_is_404(client):
	assert post_json(client, "/api/escrow/dispute", {"orderId": "ghost"}).status_code == 404


# --- read views ---------------------------------------------------------------

def test_order_detail_renders_camel_case(client):
	make_order("ord_1", amount_kobo=500_050)

	body = client.get("/api/orders/ord_1").json()

	assert body["ok"] is True
	assert body["order"]["businessId"] == "biz_A"
	assert body["order"]["escrowStatus"] == "held"
	assert body["order"]["amountKobo"] == 500_050
	assert body["order"]["amountNaira"] == "5000.50"


def test_order_detail_missing_is_404(client):
	assert client.get("/api/orders/ghost").status_code == 404


def test_wallet_detail_defaults_to_empty_wallet(client):
	body = client.get("/api/wallets/biz_new").json()

	assert body["wallet"] == {
		"businessId": "biz_new",
		"pendingBalanceKobo": 0,
		"availableBalanceKobo": 0,
		"totalEarnedKobo": 0,
		"updatedAt": None,
	}


def test_health(client):
	assert client.get("/api/health").json() == {"ok": True}
