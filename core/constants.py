"""Escrow vocabulary and unit helpers shared across the service.


- Collection names used with the document store.
- Escrow / order status values and the outcome messages callers match on.
- now_ms / kobo_to_naira convert between wall-clock and integer money units.
"""

import time
from decimal import Decimal, ROUND_DOWN

from django.db import models

KOBO_PER_NAIRA = 100

ORDERS = "orders"
WALLETS = "wallets"
TRANSACTIONS = "transactions"


class EscrowStatus(models.TextChoices):
    HELD = "held", "Held"
    RELEASED = "released", "Released"
    DISPUTED = "disputed", "Disputed"
    REFUNDED = "refunded", "Refunded"


class OrderStatus(models.TextChoices):
    PAID_HELD = "paid_held", "Paid (held in escrow)"
    RELEASED_TO_VENDOR_WALLET = "released_to_vendor_wallet", "Released to vendor wallet"
    DISPUTED = "disputed", "Disputed"
    REFUNDED = "refunded", "Refunded"


class DisputeDecision(models.TextChoices):
    RELEASE = "release", "Release to vendor"
    REFUND = "refund", "Refund buyer"


MSG_NOT_HELD = "Not held"
MSG_STILL_HOLDING = "Still holding"
MSG_RELEASED = "Released to vendor wallet"
MSG_HELD = "Held in escrow"
MSG_ALREADY_PROCESSED = "Already processed"
MSG_DISPUTED = "Dispute opened"
MSG_NOT_DISPUTED = "Not disputed"
MSG_REFUNDED = "Refunded to buyer"

ERR_ORDER_NOT_FOUND = "Order not found"
ERR_INVALID_ORDER_DATA = "Invalid order data"


def now_ms() -> int:
    """
    Current wall-clock time as integer epoch milliseconds
    """
    return int(time.time() * 1000)


def kobo_to_naira(amount_kobo: int) -> Decimal:
    """
    Convert integer kobo to a 2-decimal naira amount (display only; never stored).
    """
    return (Decimal(amount_kobo) / Decimal(KOBO_PER_NAIRA)).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
