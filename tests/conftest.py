"""
Shared fixtures: an in-memory store, a controllable clock and seeding helpers.
"""

import pytest

from core.adapters.memory_store import InMemoryDocumentStore
from core.constants import ORDERS, WALLETS, TRANSACTIONS
from core.services import EscrowLedger, EscrowSweeper

NOW_MS = 1_760_000_000_000
MINUTE_MS = 60 * 1000


class FakeClock:
	def __init__(self, now: int):
		self.now = now

	def __call__(self) -> int:
		return self.now

	def advance(self, ms: int) -> None:
		self.now += ms


@pytest.fixture
def clock():
	return FakeClock(NOW_MS)


@pytest.fixture
def store():
	return InMemoryDocumentStore()


@pytest.fixture
def ledger(store, clock):
	return EscrowLedger(store, clock=clock)


@pytest.fixture
def sweeper(store, ledger):
	return EscrowSweeper(store, ledger)


@pytest.fixture
def seed_order(store):
	def _seed(order_id="ord_1", **overrides):
		data = {
			"business_id": "biz_A",
			"amount_kobo": 500_000,
			"escrow_status": "held",
			"order_status": "paid_held",
			"hold_until_ms": NOW_MS - MINUTE_MS,
		}
		data.update(overrides)
		store.put(ORDERS, order_id, data)
		return data
	return _seed


@pytest.fixture
def seed_wallet(store):
	def _seed(business_id="biz_A", pending=500_000, available=0, total=0):
		data = {
			"pending_balance_kobo": pending,
			"available_balance_kobo": available,
			"total_earned_kobo": total,
		}
		store.put(WALLETS, business_id, data)
		return data
	return _seed


@pytest.fixture
def seed_transaction(store):
	def _seed(reference="ref_1", **fields):
		data = {"status": "held", "order_id": "ord_1"}
		data.update(fields)
		store.put(TRANSACTIONS, reference, data)
		return data
	return _seed
