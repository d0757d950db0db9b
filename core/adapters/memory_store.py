"""In-process document store with the same transaction semantics as the database.

Documents are plain dicts keyed by (collection, doc_id). Every committed write
bumps the document version; a transaction whose read versions moved before
commit is retried, exactly like the database-backed store.
"""

import threading
from copy import deepcopy
from datetime import datetime, timezone

from core.records import coerce_int
from .store_adapter import DocumentStore, Increment, SERVER_TIMESTAMP, Transaction, TransactionContention


def _numeric_sort_key(value, doc_id):
	number = coerce_int(value)
	if number is None or number <= 0:
		return (1, 0, doc_id)
	return (0, number, doc_id)


class _MemoryTransaction(Transaction):

	def __init__(self, store: "InMemoryDocumentStore"):
		super().__init__()
		self.store = store

	def _load(self, collection, doc_id):
		return self.store._snapshot(collection, doc_id)


class InMemoryDocumentStore(DocumentStore):
	"""
	Thread-safe fake of the document store.

	Only commit holds the lock, so callbacks of concurrent transactions really
	do interleave and conflicts are detected at commit time.
	"""

	def __init__(self, *, max_attempts: int = 5, clock=None):
		self.max_attempts = max_attempts
		self._clock = clock or (lambda: datetime.now(timezone.utc))
		self._docs = {}
		self._lock = threading.RLock()

	def _snapshot(self, collection, doc_id):
		with self._lock:
			entry = self._docs.get((collection, doc_id))
			if entry is None:
				return None, None
			version, data = entry
			return deepcopy(data), version

	def _attempt(self, fn):
		txn = _MemoryTransaction(self)
		result = fn(txn)
		with self._lock:
			for (collection, doc_id), version in txn.reads.items():
				entry = self._docs.get((collection, doc_id))
				current = entry[0] if entry else None
				if current != version:
					raise TransactionContention(f"{collection}/{doc_id} changed since it was read")
			for collection, doc_id, fields in txn.writes:
				self._merge(collection, doc_id, fields)
		return result

	def _merge(self, collection, doc_id, fields):
		version, data = self._docs.get((collection, doc_id), (0, {}))
		data = deepcopy(data)
		for name, value in fields.items():
			if isinstance(value, Increment):
				data[name] = (data.get(name) or 0) + value.amount
			elif value is SERVER_TIMESTAMP:
				data[name] = self._clock()
			else:
				data[name] = deepcopy(value)
		self._docs[(collection, doc_id)] = (version + 1, data)

	def get_document(self, collection, doc_id):
		data, _ = self._snapshot(collection, str(doc_id))
		return data

	def find_documents(self, collection, field, value, *, limit=None, order_by=None):
		with self._lock:
			rows = [
				(doc_id, deepcopy(data))
				for (coll, doc_id), (_, data) in self._docs.items()
				if coll == collection and data.get(field) == value
			]
		if order_by:
			rows.sort(key=lambda row: _numeric_sort_key(row[1].get(order_by), row[0]))
		else:
			rows.sort(key=lambda row: row[0])
		return rows[:limit] if limit is not None else rows

	def put(self, collection: str, doc_id: str, data: dict) -> None:
		"""
		Seed a document verbatim, replacing whatever was there
		"""
		with self._lock:
			entry = self._docs.get((collection, doc_id))
			version = entry[0] if entry else 0
			self._docs[(collection, doc_id)] = (version + 1, deepcopy(data))
