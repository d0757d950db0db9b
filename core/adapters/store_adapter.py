"""Document-store interface used by the escrow services.

The services only ever see this narrow surface: transactional point reads,
field-level merge writes, atomic increments and server timestamps. Two
implementations live next to this module: DjangoDocumentStore (the real
database) and InMemoryDocumentStore (tests, local tooling).
"""

import logging

logger = logging.getLogger(__name__)


class StoreError(Exception):
	"""Base class for document store failures."""


class TransientStoreError(StoreError):
	"""Connectivity or contention failure; safe to retry on the next invocation."""


class TransactionContention(TransientStoreError):
	"""A document read inside the transaction changed before commit."""


class TransactionUsageError(StoreError):
	"""The transaction callback broke the read-then-write contract."""


class Increment:
	"""
	Write sentinel: add `amount` to the stored number (missing field counts as 0)
	"""
	__slots__ = ("amount",)

	def __init__(self, amount: int):
		self.amount = int(amount)

	def __repr__(self):
		return f"Increment({self.amount})"


class _ServerTimestamp:
	__slots__ = ()

	def __repr__(self):
		return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def increment(amount: int) -> Increment:
	return Increment(amount)


def server_timestamp() -> _ServerTimestamp:
	return SERVER_TIMESTAMP


class Transaction:
	"""
	Read-then-write unit of work handed to run_transaction callbacks.

	Reads go straight to the store and record the version they saw (None when
	the document was absent). Writes are buffered and applied by the store at
	commit, which fails with TransactionContention if any read document moved.
	"""

	def __init__(self):
		self.reads = {}
		self.writes = []

	def get(self, collection: str, doc_id: str) -> dict | None:
		if self.writes:
			raise TransactionUsageError("All reads must happen before any write in a transaction")
		data, version = self._load(collection, str(doc_id))
		self.reads[(collection, str(doc_id))] = version
		return data

	def set(self, collection: str, doc_id: str, fields: dict) -> None:
		"""
		Merge `fields` into the document, creating it if needed
		"""
		if not doc_id:
			raise ValueError("doc_id required")
		if not fields:
			raise ValueError("fields required")
		self.writes.append((collection, str(doc_id), dict(fields)))

	def _load(self, collection: str, doc_id: str):
		raise NotImplementedError


class DocumentStore:
	"""
	Transactional document store. Subclasses implement _attempt, get_document
	and find_documents; run_transaction supplies the commit-retry loop.
	"""
	max_attempts = 5

	def run_transaction(self, fn):
		"""
		Run fn(txn) atomically and return its result.

		fn may be called more than once when a concurrent writer wins the race,
		so it must not have side effects outside the transaction.
		"""
		for attempt in range(1, self.max_attempts + 1):
			try:
				return self._attempt(fn)
			except TransactionContention as exc:
				logger.warning("Transaction conflict (attempt %s/%s): %s", attempt, self.max_attempts, exc)
		raise TransactionContention(f"Transaction aborted after {self.max_attempts} attempts")

	def set_document(self, collection: str, doc_id: str, fields: dict) -> None:
		self.run_transaction(lambda txn: txn.set(collection, doc_id, fields))

	def get_document(self, collection: str, doc_id: str) -> dict | None:
		raise NotImplementedError

	def find_documents(self, collection: str, field: str, value, *, limit: int | None = None, order_by: str | None = None):
		"""
		Return [(doc_id, data)] where data[field] == value, at most `limit` rows.

		`order_by` names a numeric field, sorted ascending with missing or
		non-positive values last; ties break on doc id.
		"""
		raise NotImplementedError

	def _attempt(self, fn):
		raise NotImplementedError
