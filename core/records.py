"""Typed views over store documents and the outcome type the services return."""

import enum
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from .constants import ERR_INVALID_ORDER_DATA, ERR_ORDER_NOT_FOUND, MSG_RELEASED

# Largest value a BigIntegerField column holds
BIGINT_MAX = 2**63 - 1


def coerce_int(value) -> int | None:
	"""
	Whole number from an int, integral float/Decimal or numeric string; else None.
	Booleans, NaN, infinities and fractions are rejected.
	"""
	if value is None or isinstance(value, bool):
		return None
	try:
		parsed = Decimal(str(value).strip())
	except InvalidOperation:
		return None
	if not parsed.is_finite() or abs(parsed) > BIGINT_MAX or parsed != parsed.to_integral_value():
		return None
	return int(parsed)


@dataclass(frozen=True)
class EscrowOrder:
	"""
	The slice of an order document the escrow engine acts on.
	"""
	order_id: str
	business_id: str
	amount_kobo: int | None
	escrow_status: str
	hold_until_ms: int
	payment_reference: str | None = None

	@classmethod
	def from_document(cls, order_id: str, data: dict) -> "EscrowOrder":
		reference = data.get("payment_reference")
		return cls(
			order_id=str(order_id),
			business_id=str(data.get("business_id") or "").strip(),
			amount_kobo=coerce_int(data.get("amount_kobo")),
			escrow_status=str(data.get("escrow_status") or ""),
			hold_until_ms=coerce_int(data.get("hold_until_ms")) or 0,
			payment_reference=str(reference) if reference else None,
		)

	def is_releasable(self) -> bool:
		"""
		True when the money fields are sane enough to move funds
		"""
		return bool(self.business_id) and self.amount_kobo is not None and self.amount_kobo > 0


class OutcomeKind(enum.Enum):
	OK = "ok"
	NOT_FOUND = "not_found"
	INVALID = "invalid"
	TRANSIENT_ERROR = "transient_error"


_HTTP_STATUS = {
	OutcomeKind.OK: 200,
	OutcomeKind.NOT_FOUND: 404,
	OutcomeKind.INVALID: 400,
	OutcomeKind.TRANSIENT_ERROR: 503,
}


@dataclass(frozen=True)
class EscrowOutcome:
	"""
	Result of an escrow operation. `message` is the success message or the
	error text; `details` are echoed back to callers (escrowStatus, holdUntilMs...).
	"""
	kind: OutcomeKind
	message: str = ""
	details: dict = field(default_factory=dict)

	@classmethod
	def success(cls, message: str, **details) -> "EscrowOutcome":
		return cls(OutcomeKind.OK, message, details)

	@classmethod
	def not_found(cls, message: str = ERR_ORDER_NOT_FOUND) -> "EscrowOutcome":
		return cls(OutcomeKind.NOT_FOUND, message)

	@classmethod
	def invalid(cls, message: str = ERR_INVALID_ORDER_DATA) -> "EscrowOutcome":
		return cls(OutcomeKind.INVALID, message)

	@classmethod
	def transient(cls, message: str) -> "EscrowOutcome":
		return cls(OutcomeKind.TRANSIENT_ERROR, message)

	@property
	def ok(self) -> bool:
		return self.kind is OutcomeKind.OK

	@property
	def released(self) -> bool:
		return self.ok and self.message == MSG_RELEASED

	@property
	def http_status(self) -> int:
		return _HTTP_STATUS[self.kind]

	def to_payload(self) -> dict:
		if self.ok:
			return {"ok": True, "message": self.message, **self.details}
		return {"ok": False, "error": self.message, **self.details}
