"""Read-only endpoints to inspect escrow state (orders, wallets)."""

from django.http import JsonResponse
from core.adapters.django_store import DjangoDocumentStore
from core.constants import ORDERS, WALLETS, kobo_to_naira
from core.records import coerce_int


def _camel(name: str) -> str:
	head, *rest = name.split("_")
	return head + "".join(part.title() for part in rest)


def _as_payload(doc: dict) -> dict:
	return {_camel(k): v for k, v in doc.items()}


def order_detail(request, order_id: str):
	"""
	GET: Escrow view of one order, amounts in kobo plus a naira rendering
	"""
	doc = DjangoDocumentStore().get_document(ORDERS, order_id)
	if doc is None:
		return JsonResponse({"ok": False, "error": "Order not found"}, status=404)
	data = _as_payload(doc)
	amount = coerce_int(doc.get("amount_kobo"))
	data["amountNaira"] = f"{kobo_to_naira(amount):.2f}" if amount is not None else None
	return JsonResponse({"ok": True, "order": data})


def wallet_detail(request, business_id: str):
	"""
	GET: Vendor wallet balances; an unknown vendor simply has an empty wallet
	"""
	doc = DjangoDocumentStore().get_document(WALLETS, business_id)
	if doc is None:
		doc = {
			"business_id": business_id,
			"pending_balance_kobo": 0,
			"available_balance_kobo": 0,
			"total_earned_kobo": 0,
			"updated_at": None,
		}
	return JsonResponse({"ok": True, "wallet": _as_payload(doc)})
