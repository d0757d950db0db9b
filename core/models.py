"""Database models backing the escrow document store.


Tables (one per store collection):
- Order: a paid marketplace order whose payment sits in escrow
- Wallet: per-vendor running balances (pending vs available)
- PaymentTransaction: side record keyed by the payment-gateway reference

Rows are only mutated through core.adapters.django_store, which bumps
`version` on every write to detect conflicting transactions.
"""

from django.db import models
from django.utils import timezone

from .constants import EscrowStatus


class Order(models.Model):
	"""
	Marketplace order holding a buyer payment in escrow
	"""
	id = models.CharField(primary_key=True, max_length=64)
	business_id = models.CharField(max_length=64, blank=True, default="")
	business_slug = models.CharField(max_length=120, blank=True, default="")
	amount_kobo = models.BigIntegerField(null=True, blank=True)
	currency = models.CharField(max_length=8, default="NGN")
	escrow_status = models.CharField(max_length=16, default=EscrowStatus.HELD)
	order_status = models.CharField(max_length=40, blank=True, default="")
	hold_until_ms = models.BigIntegerField(default=0)
	payment_reference = models.CharField(max_length=128, null=True, blank=True)
	payment_provider = models.CharField(max_length=32, blank=True, default="")
	disputed_at_ms = models.BigIntegerField(null=True, blank=True)
	released_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(default=timezone.now)
	updated_at = models.DateTimeField(null=True, blank=True)
	version = models.PositiveIntegerField(default=0)

	class Meta:
		indexes = [
			models.Index(fields=["escrow_status", "hold_until_ms"], name="order_escrow_hold_idx"),
		]


class Wallet(models.Model):
	"""
	One row per vendor. pending = still in escrow, available = withdrawable.
	"""
	business_id = models.CharField(primary_key=True, max_length=64)
	pending_balance_kobo = models.BigIntegerField(default=0)
	available_balance_kobo = models.BigIntegerField(default=0)
	total_earned_kobo = models.BigIntegerField(default=0)
	updated_at = models.DateTimeField(null=True, blank=True)
	version = models.PositiveIntegerField(default=0)


class PaymentTransaction(models.Model):
	"""
	Gateway-side view of a payment. reference is unique so a verified payment
	can only ever open one escrow hold.
	"""
	reference = models.CharField(primary_key=True, max_length=128)
	order_id = models.CharField(max_length=64, blank=True, default="")
	business_id = models.CharField(max_length=64, blank=True, default="")
	business_slug = models.CharField(max_length=120, blank=True, default="")
	amount_kobo = models.BigIntegerField(null=True, blank=True)
	status = models.CharField(max_length=16, blank=True, default="")
	provider = models.CharField(max_length=32, blank=True, default="")
	hold_until_ms = models.BigIntegerField(default=0)
	released_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(default=timezone.now)
	updated_at = models.DateTimeField(null=True, blank=True)
	version = models.PositiveIntegerField(default=0)
