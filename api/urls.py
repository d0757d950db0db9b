"""Public API surface for the escrow service.

- /escrow/release: manual/authenticated release of one order (trigger A)
- /escrow/sweep: cron entrypoint releasing matured holds (trigger B)
- /escrow/dispute, /escrow/dispute/resolve: freeze and settle disputed holds
- /webhooks/payment: gateway-verified payments open an escrow hold
- /orders/<id>, /wallets/<business_id>: read-only views for verification
"""

from django.urls import path
from .views_ops import health, escrow_release, escrow_sweep, escrow_dispute, escrow_dispute_resolve, payment_webhook
from .views_read import order_detail, wallet_detail


urlpatterns = [
	path("health", health),
	path("escrow/release", escrow_release),
	path("escrow/sweep", escrow_sweep),
	path("escrow/dispute", escrow_dispute),
	path("escrow/dispute/resolve", escrow_dispute_resolve),
	path("webhooks/payment", payment_webhook, name="payment_webhook"),
	path("orders/<str:order_id>", order_detail),
	path("wallets/<str:business_id>", wallet_detail),
]
