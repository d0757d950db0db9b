"""Document store over the Django ORM.

Each collection maps onto one model in core.models. A transaction attempt is a
transaction.atomic() block: reads lock their row (select_for_update, where the
backend supports it) and every write of a previously read row is an UPDATE
guarded by the version that was read, so lost updates surface as
TransactionContention even on backends without row locks.
"""

from django.db import IntegrityError, OperationalError, transaction
from django.db.models import Case, F, Q, Value, When
from django.utils import timezone

from core.constants import ORDERS, TRANSACTIONS, WALLETS
from core.models import Order, PaymentTransaction, Wallet
from .store_adapter import (
	DocumentStore, Increment, SERVER_TIMESTAMP, Transaction, TransactionContention, TransientStoreError,
)

COLLECTION_MODELS = {
	ORDERS: Order,
	WALLETS: Wallet,
	TRANSACTIONS: PaymentTransaction,
}


def _model_for(collection: str):
	try:
		return COLLECTION_MODELS[collection]
	except KeyError:
		raise KeyError(f"Unknown collection: {collection}") from None


def _writable_fields(model) -> set:
	return {
		f.name for f in model._meta.concrete_fields
		if f.name != "version" and not f.primary_key
	}


def _check_fields(model, names) -> None:
	unknown = set(names) - _writable_fields(model)
	if unknown:
		raise ValueError(f"Unknown fields for {model.__name__}: {sorted(unknown)}")


def _to_document(obj) -> dict:
	return {
		f.name: getattr(obj, f.attname)
		for f in obj._meta.concrete_fields
		if f.name != "version"
	}


def _update_values(fields: dict, now) -> dict:
	values = {"version": F("version") + 1}
	for name, value in fields.items():
		if isinstance(value, Increment):
			values[name] = F(name) + value.amount
		elif value is SERVER_TIMESTAMP:
			values[name] = now
		else:
			values[name] = value
	return values


def _create_values(fields: dict, now) -> dict:
	values = {}
	for name, value in fields.items():
		if isinstance(value, Increment):
			values[name] = value.amount
		elif value is SERVER_TIMESTAMP:
			values[name] = now
		else:
			values[name] = value
	return values


class _DjangoTransaction(Transaction):

	def __init__(self, store: "DjangoDocumentStore"):
		super().__init__()
		self.store = store

	def _load(self, collection, doc_id):
		model = _model_for(collection)
		obj = model.objects.using(self.store.using).select_for_update().filter(pk=doc_id).first()
		if obj is None:
			return None, None
		return _to_document(obj), obj.version

	def commit(self):
		now = timezone.now()
		for collection, doc_id, fields in self.writes:
			model = _model_for(collection)
			_check_fields(model, fields)
			key = (collection, doc_id)
			if key in self.reads:
				self.reads[key] = self._write_checked(model, doc_id, fields, self.reads[key], now)
			else:
				self._write_blind(model, doc_id, fields, now)

	def _create(self, model, doc_id, fields, now):
		# Savepoint so a lost create race doesn't poison the outer transaction
		with transaction.atomic(using=self.store.using):
			model.objects.using(self.store.using).create(**{model._meta.pk.name: doc_id}, **_create_values(fields, now))

	def _write_checked(self, model, doc_id, fields, version, now) -> int:
		if version is None:
			try:
				self._create(model, doc_id, fields, now)
			except IntegrityError:
				raise TransactionContention(f"{model.__name__}/{doc_id} was created concurrently") from None
			return 0
		updated = (
			model.objects.using(self.store.using)
			.filter(pk=doc_id, version=version)
			.update(**_update_values(fields, now))
		)
		if not updated:
			raise TransactionContention(f"{model.__name__}/{doc_id} changed since it was read")
		return version + 1

	def _write_blind(self, model, doc_id, fields, now) -> None:
		qs = model.objects.using(self.store.using).filter(pk=doc_id)
		if qs.update(**_update_values(fields, now)):
			return
		try:
			self._create(model, doc_id, fields, now)
		except IntegrityError:
			# Someone created it between our UPDATE and INSERT; merge into theirs
			qs.update(**_update_values(fields, now))


class DjangoDocumentStore(DocumentStore):
	"""
	Production store. One instance per request is fine; it holds no state
	besides the database alias and the commit attempt budget.
	"""

	def __init__(self, *, using: str = "default", max_attempts: int = 5):
		self.using = using
		self.max_attempts = max_attempts

	def _attempt(self, fn):
		try:
			with transaction.atomic(using=self.using):
				txn = _DjangoTransaction(self)
				result = fn(txn)
				txn.commit()
			return result
		except OperationalError as exc:
			raise TransientStoreError(str(exc)) from exc

	def get_document(self, collection, doc_id):
		model = _model_for(collection)
		obj = model.objects.using(self.using).filter(pk=doc_id).first()
		return _to_document(obj) if obj is not None else None

	def find_documents(self, collection, field, value, *, limit=None, order_by=None):
		model = _model_for(collection)
		_check_fields(model, [f for f in (field, order_by) if f and f != model._meta.pk.name])
		qs = model.objects.using(self.using).filter(**{field: value})
		if order_by:
			# Missing or non-positive values sort last
			unset = Q(**{f"{order_by}__isnull": True}) | Q(**{f"{order_by}__lte": 0})
			qs = qs.order_by(Case(When(unset, then=Value(1)), default=Value(0)), order_by, "pk")
		else:
			qs = qs.order_by("pk")
		if limit is not None:
			qs = qs[:limit]
		return [(str(obj.pk), _to_document(obj)) for obj in qs]
