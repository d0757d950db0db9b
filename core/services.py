"""Escrow orchestration.

EscrowLedger moves a buyer payment through escrow: hold → release, or
hold → dispute → release/refund. Each money movement is a single store
transaction covering the order transition, the wallet increments and the
payment transaction record, so a wallet is never credited twice for one order.

EscrowSweeper is the cron-driven batch that releases holds whose period has
elapsed, a bounded slice per invocation.
"""

import logging
import uuid
from dataclasses import dataclass

from django.conf import settings

from .adapters.django_store import DjangoDocumentStore
from .adapters.store_adapter import DocumentStore, TransientStoreError, increment, server_timestamp
from .constants import (
	ORDERS, WALLETS, TRANSACTIONS, EscrowStatus, OrderStatus, DisputeDecision, now_ms,
	MSG_NOT_HELD, MSG_STILL_HOLDING, MSG_RELEASED, MSG_HELD, MSG_ALREADY_PROCESSED,
	MSG_DISPUTED, MSG_NOT_DISPUTED, MSG_REFUNDED,
)
from .records import EscrowOrder, EscrowOutcome, coerce_int

logger = logging.getLogger(__name__)

DEFAULT_HOLD_MS = 5 * 60 * 1000
DEFAULT_SCAN_LIMIT = 300
DEFAULT_BATCH_LIMIT = 60


class EscrowLedger:
	"""
	Escrow state machine over an injected DocumentStore.

	`clock` returns epoch milliseconds; tests pass a fake to move time.
	"""

	def __init__(self, store: DocumentStore, *, clock=now_ms, hold_ms: int = DEFAULT_HOLD_MS):
		self.store = store
		self.clock = clock
		self.hold_ms = hold_ms

	def release_escrow_if_eligible(self, order_id: str) -> EscrowOutcome:
		"""
		Release a held order to the vendor wallet once its hold has elapsed.

		Not-held and still-holding orders are successful no-ops, so the same
		order can be submitted any number of times. Store errors propagate.
		"""
		if not order_id:
			raise ValueError("order_id required")

		def release(txn):
			data = txn.get(ORDERS, order_id)
			if data is None:
				return EscrowOutcome.not_found()
			order = EscrowOrder.from_document(order_id, data)

			if order.escrow_status != EscrowStatus.HELD:
				return EscrowOutcome.success(MSG_NOT_HELD, escrowStatus=data.get("escrow_status"))

			if self.clock() < order.hold_until_ms:
				return EscrowOutcome.success(MSG_STILL_HOLDING, holdUntilMs=order.hold_until_ms)

			if not order.is_releasable():
				return EscrowOutcome.invalid()

			self._release_to_vendor(txn, order)
			return EscrowOutcome.success(MSG_RELEASED)

		outcome = self.store.run_transaction(release)
		if outcome.released:
			logger.info("Released escrow for order %s", order_id)
		elif not outcome.ok:
			logger.warning("Escrow release refused for order %s: %s", order_id, outcome.message)
		return outcome

	def hold_payment(self, reference: str, business_id: str, amount_kobo, *, business_slug: str = "",
			currency: str = "NGN", provider: str = "paystack", hold_ms: int | None = None) -> EscrowOutcome:
		"""
		Open an escrow hold for a gateway-verified payment.

		Idempotent per reference: a replayed confirmation returns the order that
		the first one created instead of holding the money twice.
		"""
		reference = str(reference or "").strip()
		business_id = str(business_id or "").strip()
		amount = coerce_int(amount_kobo)
		if not reference or not business_id or amount is None or amount <= 0:
			return EscrowOutcome.invalid("Invalid payment data")

		hold_until_ms = self.clock() + (self.hold_ms if hold_ms is None else hold_ms)

		def hold(txn):
			existing = txn.get(TRANSACTIONS, reference)
			if existing is not None:
				return EscrowOutcome.success(
					MSG_ALREADY_PROCESSED,
					orderId=existing.get("order_id"),
					escrowStatus=existing.get("status"),
					holdUntilMs=existing.get("hold_until_ms"),
					alreadyProcessed=True,
				)

			order_id = uuid.uuid4().hex
			txn.set(ORDERS, order_id, {
				"business_id": business_id,
				"business_slug": business_slug,
				"amount_kobo": amount,
				"currency": currency,
				"escrow_status": EscrowStatus.HELD,
				"order_status": OrderStatus.PAID_HELD,
				"hold_until_ms": hold_until_ms,
				"payment_reference": reference,
				"payment_provider": provider,
				"created_at": server_timestamp(),
				"updated_at": server_timestamp(),
			})
			txn.set(TRANSACTIONS, reference, {
				"order_id": order_id,
				"business_id": business_id,
				"business_slug": business_slug,
				"amount_kobo": amount,
				"status": EscrowStatus.HELD,
				"provider": provider,
				"hold_until_ms": hold_until_ms,
				"created_at": server_timestamp(),
			})
			txn.set(WALLETS, business_id, {
				"pending_balance_kobo": increment(amount),
				"available_balance_kobo": increment(0),
				"total_earned_kobo": increment(0),
				"updated_at": server_timestamp(),
			})
			return EscrowOutcome.success(
				MSG_HELD,
				orderId=order_id,
				escrowStatus=EscrowStatus.HELD.value,
				holdUntilMs=hold_until_ms,
				alreadyProcessed=False,
			)

		outcome = self.store.run_transaction(hold)
		if not outcome.details.get("alreadyProcessed"):
			logger.info("Held %s kobo in escrow for %s (ref %s)", amount, business_id, reference)
		return outcome

	def open_dispute(self, order_id: str) -> EscrowOutcome:
		"""
		Freeze a held order so neither the sweep nor a manual release can pay it out
		"""
		if not order_id:
			raise ValueError("order_id required")

		def dispute(txn):
			data = txn.get(ORDERS, order_id)
			if data is None:
				return EscrowOutcome.not_found()
			order = EscrowOrder.from_document(order_id, data)
			if order.escrow_status != EscrowStatus.HELD:
				return EscrowOutcome.success(MSG_NOT_HELD, escrowStatus=data.get("escrow_status"))

			txn.set(ORDERS, order_id, {
				"escrow_status": EscrowStatus.DISPUTED,
				"order_status": OrderStatus.DISPUTED,
				"disputed_at_ms": self.clock(),
				"updated_at": server_timestamp(),
			})
			return EscrowOutcome.success(MSG_DISPUTED, escrowStatus=EscrowStatus.DISPUTED.value)

		outcome = self.store.run_transaction(dispute)
		if outcome.message == MSG_DISPUTED:
			logger.info("Escrow disputed for order %s", order_id)
		return outcome

	def resolve_dispute(self, order_id: str, decision: str) -> EscrowOutcome:
		"""
		Settle a disputed order: "release" pays the vendor, "refund" unwinds the
		pending balance. Orders that are not disputed are left alone.
		"""
		if not order_id:
			raise ValueError("order_id required")
		if decision not in DisputeDecision.values:
			raise ValueError(f"Unknown dispute decision: {decision!r}")

		def resolve(txn):
			data = txn.get(ORDERS, order_id)
			if data is None:
				return EscrowOutcome.not_found()
			order = EscrowOrder.from_document(order_id, data)
			if order.escrow_status != EscrowStatus.DISPUTED:
				return EscrowOutcome.success(MSG_NOT_DISPUTED, escrowStatus=data.get("escrow_status"))
			if not order.is_releasable():
				return EscrowOutcome.invalid()

			if decision == DisputeDecision.RELEASE:
				self._release_to_vendor(txn, order)
				return EscrowOutcome.success(MSG_RELEASED)
			self._refund_buyer(txn, order)
			return EscrowOutcome.success(MSG_REFUNDED)

		outcome = self.store.run_transaction(resolve)
		logger.info("Dispute on order %s resolved (%s): %s", order_id, decision, outcome.message)
		return outcome

	# --- Transaction bodies ------------------------------------------------------

	def _release_to_vendor(self, txn, order: EscrowOrder) -> None:
		amount = order.amount_kobo
		txn.set(WALLETS, order.business_id, {
			"pending_balance_kobo": increment(-amount),
			"available_balance_kobo": increment(amount),
			"total_earned_kobo": increment(amount),
			"updated_at": server_timestamp(),
		})
		txn.set(ORDERS, order.order_id, {
			"escrow_status": EscrowStatus.RELEASED,
			"order_status": OrderStatus.RELEASED_TO_VENDOR_WALLET,
			"released_at": server_timestamp(),
			"updated_at": server_timestamp(),
		})
		# Merge write: creates the record if checkout never wrote one
		if order.payment_reference:
			txn.set(TRANSACTIONS, order.payment_reference, {
				"status": EscrowStatus.RELEASED,
				"released_at": server_timestamp(),
				"updated_at": server_timestamp(),
			})

	def _refund_buyer(self, txn, order: EscrowOrder) -> None:
		txn.set(WALLETS, order.business_id, {
			"pending_balance_kobo": increment(-order.amount_kobo),
			"updated_at": server_timestamp(),
		})
		txn.set(ORDERS, order.order_id, {
			"escrow_status": EscrowStatus.REFUNDED,
			"order_status": OrderStatus.REFUNDED,
			"updated_at": server_timestamp(),
		})
		if order.payment_reference:
			txn.set(TRANSACTIONS, order.payment_reference, {
				"status": EscrowStatus.REFUNDED,
				"updated_at": server_timestamp(),
			})


@dataclass
class SweepReport:
	scanned_held: int = 0
	due: int = 0
	released: int = 0
	skipped: int = 0

	def to_payload(self) -> dict:
		return {
			"ok": True,
			"scannedHeld": self.scanned_held,
			"due": self.due,
			"released": self.released,
			"skipped": self.skipped,
		}


class EscrowSweeper:
	"""
	Releases matured holds. Meant to be hit by a cron every 1-2 minutes:
	at most `scan_limit` held orders are read and at most `batch_limit` of
	them released per call, so a burst of maturing orders drains over
	several ticks.
	"""

	def __init__(self, store: DocumentStore, ledger: EscrowLedger, *,
			scan_limit: int = DEFAULT_SCAN_LIMIT, batch_limit: int = DEFAULT_BATCH_LIMIT):
		self.store = store
		self.ledger = ledger
		self.scan_limit = scan_limit
		self.batch_limit = batch_limit

	def sweep_due_escrow(self) -> SweepReport:
		"""
		Scan held orders, release the due ones. A failing scan raises; a failing
		order only counts as skipped.
		"""
		held = self.store.find_documents(
			ORDERS, "escrow_status", EscrowStatus.HELD.value,
			limit=self.scan_limit, order_by="hold_until_ms",
		)
		now = self.ledger.clock()
		due = [
			order_id for order_id, data in held
			if 0 < (coerce_int(data.get("hold_until_ms")) or 0) <= now
		][: self.batch_limit]

		report = SweepReport(scanned_held=len(held), due=len(due))
		for order_id in due:
			outcome = self._release_one(order_id)
			if outcome.released:
				report.released += 1
			else:
				report.skipped += 1

		logger.info(
			"Escrow sweep: scanned=%s due=%s released=%s skipped=%s",
			report.scanned_held, report.due, report.released, report.skipped,
		)
		return report

	def _release_one(self, order_id: str) -> EscrowOutcome:
		try:
			return self.ledger.release_escrow_if_eligible(order_id)
		except TransientStoreError as exc:
			logger.warning("Escrow sweep skipped order %s: %s", order_id, exc)
			return EscrowOutcome.transient(str(exc))
		except Exception:
			# Log and continue; one bad order must not fail the whole batch
			logger.exception("Escrow sweep skipped order %s", order_id)
			return EscrowOutcome.transient("Unexpected release failure")


def get_ledger(store: DocumentStore | None = None) -> EscrowLedger:
	"""
	Ledger wired to the database store and the configured hold period
	"""
	if store is None:
		store = DjangoDocumentStore(max_attempts=getattr(settings, "ESCROW_STORE_MAX_ATTEMPTS", 5))
	return EscrowLedger(store, hold_ms=getattr(settings, "ESCROW_HOLD_MS", DEFAULT_HOLD_MS))


def get_sweeper(ledger: EscrowLedger | None = None) -> EscrowSweeper:
	ledger = ledger or get_ledger()
	return EscrowSweeper(
		ledger.store,
		ledger,
		scan_limit=getattr(settings, "ESCROW_SWEEP_SCAN_LIMIT", DEFAULT_SCAN_LIMIT),
		batch_limit=getattr(settings, "ESCROW_SWEEP_BATCH_LIMIT", DEFAULT_BATCH_LIMIT),
	)
