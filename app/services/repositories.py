"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore)
for products, tables and orders.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from google.api_core import exceptions as google_exceptions
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError, OrderStateError, StoreError, ValidationFailed
from app.models import Order, OrderItem, Product, Table
from app.schemas.order import OrderItemRecord, OrderRecord, OrderStatus
from app.schemas.product import ProductRecord
from app.schemas.table import TableRecord
from app.services.firebase_client import get_firestore_client, use_firestore

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ("name", "stock", "price", "discounted_price")


@contextmanager
def sql_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and raise StoreError when the database fails"""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Database failed to {action}: {exc}")
        raise StoreError(f"Could not {action}") from exc


@contextmanager
def firestore_errors(action: str, resource: str = "Record", identifier: Optional[str] = None) -> Iterator[None]:
    """Map Google API failures to NotFoundError / StoreError"""
    try:
        yield
    except google_exceptions.NotFound as exc:
        raise NotFoundError(resource, identifier) from exc
    except google_exceptions.GoogleAPICallError as exc:
        logger.error(f"Firestore failed to {action}: {exc}")
        raise StoreError(f"Could not {action}") from exc


def _to_firestore(data: Dict[str, Any]) -> Dict[str, Any]:
    # Firestore has no decimal type; money is kept as exact strings
    return {key: str(value) if isinstance(value, Decimal) else value for key, value in data.items()}


def _doc_data(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


# -------- Product repository --------

class ProductRepo(ABC):
    @abstractmethod
    def list_products(self, in_stock_only: bool = False) -> List[ProductRecord]:
        """Products ordered by name"""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductRecord:
        ...

    @abstractmethod
    def create_product(self, fields: Dict[str, Any]) -> ProductRecord:
        ...

    @abstractmethod
    def update_product(self, product_id: str, patch: Dict[str, Any]) -> ProductRecord:
        ...

    @abstractmethod
    def delete_product(self, product_id: str) -> None:
        ...


class SqlProductRepo(ProductRepo):
    def __init__(self, db: Session):
        self.db = db

    def _get(self, product_id: str) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def list_products(self, in_stock_only: bool = False) -> List[ProductRecord]:
        with sql_errors(self.db, "list products"):
            query = self.db.query(Product)
            if in_stock_only:
                query = query.filter(Product.stock > 0)
            products = query.order_by(Product.name).all()
        return [ProductRecord.model_validate(p) for p in products]

    def get_product(self, product_id: str) -> ProductRecord:
        with sql_errors(self.db, "load product"):
            return ProductRecord.model_validate(self._get(product_id))

    def create_product(self, fields: Dict[str, Any]) -> ProductRecord:
        with sql_errors(self.db, "create product"):
            product = Product(**{k: v for k, v in fields.items() if k in PRODUCT_FIELDS})
            self.db.add(product)
            self.db.commit()
            self.db.refresh(product)
        return ProductRecord.model_validate(product)

    def update_product(self, product_id: str, patch: Dict[str, Any]) -> ProductRecord:
        with sql_errors(self.db, "update product"):
            product = self._get(product_id)
            for field, value in patch.items():
                if field in PRODUCT_FIELDS:
                    setattr(product, field, value)
            self.db.commit()
            self.db.refresh(product)
        return ProductRecord.model_validate(product)

    def delete_product(self, product_id: str) -> None:
        with sql_errors(self.db, "delete product"):
            product = self._get(product_id)
            # Order items keep their name/price snapshot
            self.db.query(OrderItem).filter(OrderItem.product_id == product_id).update(
                {"product_id": None}, synchronize_session=False
            )
            self.db.delete(product)
            self.db.commit()


# Firestore shape: collection "products/{id}"
class FirestoreProductRepo(ProductRepo):
    def __init__(self, client):
        self.client = client

    @property
    def _products(self):
        return self.client.collection("products")

    def list_products(self, in_stock_only: bool = False) -> List[ProductRecord]:
        with firestore_errors("list products"):
            docs = self._products.order_by("name").stream()
            products = [ProductRecord(**_doc_data(d)) for d in docs]
        if in_stock_only:
            products = [p for p in products if p.stock > 0]
        return products

    def get_product(self, product_id: str) -> ProductRecord:
        with firestore_errors("load product", "Product", product_id):
            doc = self._products.document(product_id).get()
        if not doc.exists:
            raise NotFoundError("Product", product_id)
        return ProductRecord(**_doc_data(doc))

    def create_product(self, fields: Dict[str, Any]) -> ProductRecord:
        data = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS}
        with firestore_errors("create product"):
            ref = self._products.document()
            ref.set(_to_firestore(data))
        return ProductRecord(id=ref.id, **data)

    def update_product(self, product_id: str, patch: Dict[str, Any]) -> ProductRecord:
        data = {k: v for k, v in patch.items() if k in PRODUCT_FIELDS}
        with firestore_errors("update product", "Product", product_id):
            if data:
                self._products.document(product_id).update(_to_firestore(data))
        return self.get_product(product_id)

    def delete_product(self, product_id: str) -> None:
        ref = self._products.document(product_id)
        with firestore_errors("delete product", "Product", product_id):
            if not ref.get().exists:
                raise NotFoundError("Product", product_id)
            ref.delete()


# -------- Table repository --------

class TableRepo(ABC):
    @abstractmethod
    def list_tables(self) -> List[TableRecord]:
        """Tables ordered by number"""

    @abstractmethod
    def get_by_number(self, number: int) -> Optional[TableRecord]:
        ...

    @abstractmethod
    def create_table(self, number: int) -> TableRecord:
        ...

    def require_by_number(self, number: int) -> TableRecord:
        table = self.get_by_number(number)
        if table is None:
            raise NotFoundError("Table", number)
        return table


class SqlTableRepo(TableRepo):
    def __init__(self, db: Session):
        self.db = db

    def list_tables(self) -> List[TableRecord]:
        with sql_errors(self.db, "list tables"):
            tables = self.db.query(Table).order_by(Table.number).all()
        return [TableRecord.model_validate(t) for t in tables]

    def get_by_number(self, number: int) -> Optional[TableRecord]:
        with sql_errors(self.db, "load table"):
            table = self.db.query(Table).filter(Table.number == number).first()
        return TableRecord.model_validate(table) if table else None

    def create_table(self, number: int) -> TableRecord:
        if self.get_by_number(number) is not None:
            raise ValidationFailed(f"Table {number} already exists")
        with sql_errors(self.db, "create table"):
            table = Table(number=number)
            self.db.add(table)
            self.db.commit()
            self.db.refresh(table)
        return TableRecord.model_validate(table)


# Firestore shape: collection "tables/{id}" with a numeric "number"
class FirestoreTableRepo(TableRepo):
    def __init__(self, client):
        self.client = client

    @property
    def _tables(self):
        return self.client.collection("tables")

    def list_tables(self) -> List[TableRecord]:
        with firestore_errors("list tables"):
            docs = self._tables.order_by("number").stream()
            return [TableRecord(**_doc_data(d)) for d in docs]

    def get_by_number(self, number: int) -> Optional[TableRecord]:
        with firestore_errors("load table"):
            docs = self._tables.where("number", "==", number).limit(1).get()
        return TableRecord(**_doc_data(docs[0])) if docs else None

    def create_table(self, number: int) -> TableRecord:
        if self.get_by_number(number) is not None:
            raise ValidationFailed(f"Table {number} already exists")
        with firestore_errors("create table"):
            ref = self._tables.document()
            ref.set({"number": number})
        return TableRecord(id=ref.id, number=number)


# -------- Order repository --------

class OrderRepo(ABC):
    @abstractmethod
    def list_orders(
        self,
        event_id: str,
        status: Optional[OrderStatus] = None,
        exclude_status: Optional[OrderStatus] = None,
        table_id: Optional[str] = None,
    ) -> List[OrderRecord]:
        """Orders of an event, newest first"""

    @abstractmethod
    def get_order(self, order_id: str) -> OrderRecord:
        ...

    @abstractmethod
    def create_order(
        self, table: TableRecord, event_id: str, items: List[OrderItemRecord], now: datetime
    ) -> OrderRecord:
        ...

    @abstractmethod
    def set_status(self, order_id: str, status: OrderStatus, now: datetime) -> OrderRecord:
        """Move a pending order to ``status``.

        Raises OrderStateError when the order is no longer pending, including
        when another decision lands between the read and the write.
        """


def _already_decided(order: OrderRecord) -> OrderStateError:
    return OrderStateError(
        f"Order {order.id} was already {order.status.value}",
        details={"status": order.status.value},
    )


def _sql_order_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        table_id=order.table_id,
        table_number=order.table.number if order.table else None,
        event_id=order.event_id,
        status=order.status,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=[OrderItemRecord.model_validate(item) for item in order.items],
    )


class SqlOrderRepo(OrderRepo):
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Order).options(selectinload(Order.items), selectinload(Order.table))

    def _get(self, order_id: str) -> Order:
        order = self._query().filter(Order.id == order_id).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(self, event_id, status=None, exclude_status=None, table_id=None) -> List[OrderRecord]:
        with sql_errors(self.db, "list orders"):
            query = self._query().filter(Order.event_id == event_id)
            if status is not None:
                query = query.filter(Order.status == OrderStatus(status).value)
            if exclude_status is not None:
                query = query.filter(Order.status != OrderStatus(exclude_status).value)
            if table_id:
                query = query.filter(Order.table_id == table_id)
            orders = query.order_by(Order.created_at.desc()).all()
        return [_sql_order_record(o) for o in orders]

    def get_order(self, order_id: str) -> OrderRecord:
        with sql_errors(self.db, "load order"):
            return _sql_order_record(self._get(order_id))

    def create_order(self, table, event_id, items, now) -> OrderRecord:
        with sql_errors(self.db, "create order"):
            order = Order(
                table_id=table.id,
                event_id=event_id,
                status=OrderStatus.PENDING.value,
                created_at=now,
                updated_at=now,
                items=[OrderItem(**item.model_dump()) for item in items],
            )
            self.db.add(order)
            self.db.commit()
            order_id = order.id
        return self.get_order(order_id)

    def set_status(self, order_id, status, now) -> OrderRecord:
        with sql_errors(self.db, "update order"):
            # Only a pending order changes status
            changed = (
                self.db.query(Order)
                .filter(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
                .update({"status": OrderStatus(status).value, "updated_at": now}, synchronize_session=False)
            )
            self.db.commit()
        order = self.get_order(order_id)
        if not changed:
            raise _already_decided(order)
        return order


# Firestore shape: collection "orders/{id}" with line items embedded and the
# table number copied in, so listing an order is a single read
class FirestoreOrderRepo(OrderRepo):
    def __init__(self, client):
        self.client = client

    @property
    def _orders(self):
        return self.client.collection("orders")

    def list_orders(self, event_id, status=None, exclude_status=None, table_id=None) -> List[OrderRecord]:
        with firestore_errors("list orders"):
            query = self._orders.where("event_id", "==", event_id)
            if status is not None:
                query = query.where("status", "==", OrderStatus(status).value)
            if table_id:
                query = query.where("table_id", "==", table_id)
            orders = [OrderRecord(**_doc_data(d)) for d in query.stream()]
        if exclude_status is not None:
            orders = [o for o in orders if o.status != OrderStatus(exclude_status)]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def get_order(self, order_id: str) -> OrderRecord:
        with firestore_errors("load order", "Order", order_id):
            doc = self._orders.document(order_id).get()
        if not doc.exists:
            raise NotFoundError("Order", order_id)
        return OrderRecord(**_doc_data(doc))

    def create_order(self, table, event_id, items, now) -> OrderRecord:
        data = {
            "table_id": table.id,
            "table_number": table.number,
            "event_id": event_id,
            "status": OrderStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
            "items": [_to_firestore(item.model_dump()) for item in items],
        }
        with firestore_errors("create order"):
            ref = self._orders.document()
            ref.set(data)
        return self.get_order(ref.id)

    def set_status(self, order_id, status, now) -> OrderRecord:
        ref = self._orders.document(order_id)
        with firestore_errors("update order", "Order", order_id):
            snapshot = ref.get()
            if not snapshot.exists:
                raise NotFoundError("Order", order_id)
            current = OrderRecord(**_doc_data(snapshot))
            if current.status != OrderStatus.PENDING:
                raise _already_decided(current)
            try:
                # Rejected if the order was written since it was read
                ref.update(
                    {"status": OrderStatus(status).value, "updated_at": now},
                    option=self.client.write_option(last_update_time=snapshot.update_time),
                )
            except google_exceptions.FailedPrecondition as exc:
                raise _already_decided(self.get_order(order_id)) from exc
        return self.get_order(order_id)


# -------- Factories --------

def build_product_repo(db: Session) -> ProductRepo:
    return FirestoreProductRepo(get_firestore_client()) if use_firestore() else SqlProductRepo(db)


def build_table_repo(db: Session) -> TableRepo:
    return FirestoreTableRepo(get_firestore_client()) if use_firestore() else SqlTableRepo(db)


def build_order_repo(db: Session) -> OrderRepo:
    return FirestoreOrderRepo(get_firestore_client()) if use_firestore() else SqlOrderRepo(db)
