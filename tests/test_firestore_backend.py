"""
Tests for the Firestore event store and repositories against an in-memory client
"""

import copy
import itertools
import uuid
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from google.api_core import exceptions as google_exceptions

from app.core.exceptions import NotFoundError, OrderStateError, ValidationFailed
from app.schemas.order import OrderItemRecord, OrderStatus
from app.services.event_service import EventService
from app.services.event_store import FirestoreEventStore
from app.services.repositories import FirestoreOrderRepo, FirestoreProductRepo, FirestoreTableRepo

NOW = datetime(2025, 6, 14, 20, 0, tzinfo=timezone.utc)
H = timedelta(hours=1)


class FakeSnapshot:
    def __init__(self, reference, data, update_time):
        self.reference = reference
        self.id = reference.id
        self.exists = data is not None
        self.update_time = update_time
        self._data = copy.deepcopy(data)

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


class FakeDocument:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self):
        return FakeSnapshot(self, self.collection.docs.get(self.id), self.collection.update_times.get(self.id))

    def set(self, data):
        self.collection.client.direct_writes.append(("set", self.id))
        self.collection.write(self.id, dict(data))

    def update(self, patch, option=None):
        client = self.collection.client
        if client.before_update is not None:
            hook, client.before_update = client.before_update, None
            hook()
        if self.id not in self.collection.docs:
            raise google_exceptions.NotFound(f"No document to update: {self.id}")
        if option is not None and option.last_update_time != self.collection.update_times[self.id]:
            raise google_exceptions.FailedPrecondition("Document was modified")
        client.direct_writes.append(("update", self.id))
        self.collection.write(self.id, {**self.collection.docs[self.id], **patch})

    def delete(self):
        self.collection.client.direct_writes.append(("delete", self.id))
        self.collection.docs.pop(self.id, None)


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, limit=None):
        self.collection = collection
        self.filters = filters
        self.order = order
        self._limit = limit

    def where(self, field, op, value):
        assert op == "=="
        return FakeQuery(self.collection, self.filters + ((field, value),), self.order, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self.collection, self.filters, (field, direction == "DESCENDING"), self._limit)

    def limit(self, count):
        return FakeQuery(self.collection, self.filters, self.order, count)

    def stream(self):
        docs = [
            self.collection.document(doc_id).get()
            for doc_id, data in self.collection.docs.items()
            if all(data.get(field) == value for field, value in self.filters)
        ]
        if self.order:
            field, descending = self.order
            docs.sort(key=lambda d: d.to_dict()[field], reverse=descending)
        return iter(docs[:self._limit] if self._limit is not None else docs)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, client):
        super().__init__(self)
        self.client = client
        self.docs = {}
        self.update_times = {}

    def document(self, doc_id=None):
        return FakeDocument(self, doc_id or uuid.uuid4().hex)

    def write(self, doc_id, data):
        self.docs[doc_id] = data
        self.update_times[doc_id] = next(self.client.clock)


class FakeBatch:
    def __init__(self, client):
        self.client = client
        self.ops = []

    def set(self, ref, data):
        self.ops.append(("set", ref, dict(data)))

    def update(self, ref, patch):
        self.ops.append(("update", ref, dict(patch)))

    def commit(self):
        self.client.commits.append([(op, ref.id, data) for op, ref, data in self.ops])
        for op, ref, data in self.ops:
            current = ref.collection.docs.get(ref.id, {}) if op == "update" else {}
            ref.collection.write(ref.id, {**current, **data})


class FakeFirestore:
    """Just enough of the Firestore client for the stores"""

    def __init__(self):
        self.collections = {}
        self.commits = []
        self.direct_writes = []
        self.before_update = None
        self.clock = itertools.count(1)

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection(self))

    def batch(self):
        return FakeBatch(self)

    def write_option(self, last_update_time=None):
        return SimpleNamespace(last_update_time=last_update_time)


@pytest.fixture
def client():
    return FakeFirestore()

@pytest.fixture
def store(client):
    return FirestoreEventStore(client)

def seed(client, event_id, start, end, active=False):
    client.collection("events").write(event_id, {
        "name": f"Event {event_id}",
        "start_time": NOW + start,
        "end_time": NOW + end,
        "is_active": active,
        "created_at": NOW - 24 * H,
    })

def active_ids(client):
    return sorted(i for i, d in client.collection("events").docs.items() if d["is_active"])

def test_activation_lands_in_a_single_batch(client, store):
    seed(client, "A", -3 * H, -2 * H, active=True)
    seed(client, "B", 2 * H, 3 * H, active=True)
    seed(client, "C", -H, H)

    event = store.activate_exclusive("C", {"name": "Gala"})

    assert event.is_active is True
    assert event.name == "Gala"
    assert len(client.commits) == 1
    assert sorted(doc_id for _, doc_id, _ in client.commits[0]) == ["A", "B", "C"]
    assert client.direct_writes == []
    assert active_ids(client) == ["C"]

def test_insert_exclusive_lands_in_a_single_batch(client, store):
    seed(client, "A", -3 * H, H, active=True)

    event = store.insert_exclusive({"name": "Gala", "start_time": NOW - H, "end_time": NOW + H})

    assert len(client.commits) == 1
    assert {op for op, _, _ in client.commits[0]} == {"set", "update"}
    assert client.direct_writes == []
    assert active_ids(client) == [event.id]

def test_update_many_except_skips_matching_documents(client, store):
    seed(client, "keep", -H, H, active=True)
    seed(client, "A", 2 * H, 3 * H, active=True)
    seed(client, "B", 4 * H, 5 * H)

    changed = store.update_many_except("keep", {"is_active": False})

    assert changed == 1
    assert [doc_id for _, doc_id, _ in client.commits[0]] == ["A"]
    assert active_ids(client) == ["keep"]

def test_update_many_except_without_changes_writes_nothing(client, store):
    seed(client, "A", 2 * H, 3 * H)

    assert store.update_many_except(None, {"is_active": False}) == 0
    assert client.commits == []

def test_missing_event_raises_not_found(client, store):
    with pytest.raises(NotFoundError):
        store.get_event("missing")
    with pytest.raises(NotFoundError):
        store.update_event("missing", {"is_active": False})
    with pytest.raises(NotFoundError):
        store.activate_exclusive("missing")
    with pytest.raises(NotFoundError):
        store.delete_event("missing")

    assert client.commits == []

def test_events_listed_by_start_descending(client, store):
    seed(client, "first", -5 * H, -4 * H)
    seed(client, "third", 3 * H, 4 * H)
    seed(client, "second", -H, H)

    assert [e.id for e in store.list_events()] == ["third", "second", "first"]

def test_reconcile_on_firestore(client, store):
    seed(client, "A", -H, H)
    seed(client, "B", -3 * H, -2 * H, active=True)

    EventService(store, clock=lambda: NOW).reconcile()

    assert active_ids(client) == ["A"]
    assert store.get_active_event().id == "A"

def test_products_keep_exact_prices(client):
    products = FirestoreProductRepo(client)

    wine = products.create_product({"name": "Wine", "stock": 3, "price": Decimal("3.00"), "discounted_price": Decimal("2.50")})
    products.create_product({"name": "Ale", "stock": 0, "price": Decimal("2.00"), "discounted_price": Decimal("2.00")})

    assert client.collection("products").docs[wine.id]["discounted_price"] == "2.50"
    assert products.get_product(wine.id).discounted_price == Decimal("2.50")
    assert [p.name for p in products.list_products()] == ["Ale", "Wine"]
    assert [p.name for p in products.list_products(in_stock_only=True)] == ["Wine"]
    with pytest.raises(NotFoundError):
        products.delete_product("missing")

def test_table_numbers_are_unique(client):
    tables = FirestoreTableRepo(client)
    tables.create_table(2)
    tables.create_table(1)

    assert [t.number for t in tables.list_tables()] == [1, 2]
    assert tables.require_by_number(2).number == 2
    with pytest.raises(ValidationFailed):
        tables.create_table(1)
    with pytest.raises(NotFoundError):
        tables.require_by_number(9)

@pytest.fixture
def placed_order(client):
    table = FirestoreTableRepo(client).create_table(1)
    items = [OrderItemRecord(
        product_id="wine",
        product_name="Wine",
        quantity=2,
        price_at_order=Decimal("3.00"),
        discounted_price_at_order=Decimal("2.50"),
    )]
    return FirestoreOrderRepo(client).create_order(table, "gala", items, NOW)

def test_order_keeps_table_number_and_items(client, placed_order):
    orders = FirestoreOrderRepo(client)

    assert placed_order.table_number == 1
    assert placed_order.total == Decimal("5.00")
    assert [o.id for o in orders.list_orders("gala", status=OrderStatus.PENDING)] == [placed_order.id]
    assert orders.list_orders("gala", exclude_status=OrderStatus.PENDING) == []

def test_order_is_decided_once(client, placed_order):
    orders = FirestoreOrderRepo(client)

    accepted = orders.set_status(placed_order.id, OrderStatus.ACCEPTED, NOW + H)

    assert accepted.status == OrderStatus.ACCEPTED
    with pytest.raises(OrderStateError):
        orders.set_status(placed_order.id, OrderStatus.REJECTED, NOW + H)
    with pytest.raises(NotFoundError):
        orders.set_status("missing", OrderStatus.REJECTED, NOW + H)

def test_decision_written_meanwhile_wins(client, placed_order):
    orders = FirestoreOrderRepo(client)
    collection = client.collection("orders")

    def other_staff_accepts():
        collection.write(placed_order.id, {**collection.docs[placed_order.id], "status": "accepted"})

    client.before_update = other_staff_accepts

    with pytest.raises(OrderStateError):
        orders.set_status(placed_order.id, OrderStatus.REJECTED, NOW + H)

    assert collection.docs[placed_order.id]["status"] == "accepted"
