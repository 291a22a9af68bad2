"""
Order requests, history and financial rollups.

Orders are placed from a table while an event is active and start out
pending; the backoffice accepts or rejects them exactly once.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from app.core.exceptions import NoActiveEventError, ValidationFailed
from app.schemas.event import EventRecord
from app.schemas.order import OrderCreate, OrderItemRecord, OrderRecord, OrderStatus, TableFinances
from app.services.event_store import EventStore
from app.services.repositories import OrderRepo, ProductRepo, TableRepo
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

# Statuses a pending order may move to
DECISIONS = (OrderStatus.ACCEPTED, OrderStatus.REJECTED)


class OrderService:
    def __init__(
        self,
        orders: OrderRepo,
        tables: TableRepo,
        products: ProductRepo,
        events: EventStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.orders = orders
        self.tables = tables
        self.products = products
        self.events = events
        self.clock = clock

    def place_order(self, table_number: int, data: OrderCreate) -> OrderRecord:
        """Create a pending order for a table under the active event"""
        event = self.events.get_active_event()
        if event is None:
            raise NoActiveEventError("Orders can only be placed while an event is in progress")

        table = self.tables.require_by_number(table_number)
        items = []
        for line in data.items:
            product = self.products.get_product(line.product_id)
            items.append(OrderItemRecord(
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                price_at_order=product.price,
                discounted_price_at_order=product.discounted_price,
            ))

        order = self.orders.create_order(table, event.id, items, self.clock())
        logger.info(f"Table {table.number} placed order {order.id} ({len(items)} items) for event {event.id}")
        return order

    def pending_requests(self) -> Tuple[Optional[EventRecord], List[OrderRecord]]:
        """Pending orders of the active event, newest first"""
        event = self.events.get_active_event()
        if event is None:
            return None, []
        return event, self.orders.list_orders(event.id, status=OrderStatus.PENDING)

    def decide(self, order_id: str, status: OrderStatus) -> OrderRecord:
        status = OrderStatus(status)
        if status not in DECISIONS:
            raise ValidationFailed(f"Orders can only be accepted or rejected, not set to '{status.value}'")

        # The repository refuses orders that are no longer pending
        updated = self.orders.set_status(order_id, status, self.clock())
        logger.info(f"Order {order_id} {status.value}")
        return updated

    def resolve_event_id(self, event_id: Optional[str]) -> Optional[str]:
        """Reports default to the most recently started event"""
        if event_id:
            return self.events.get_event(event_id).id
        events = self.events.list_events()
        return events[0].id if events else None

    def history(self, event_id: str, table_id: Optional[str] = None) -> List[OrderRecord]:
        """Decided (accepted and rejected) orders of an event"""
        return self.orders.list_orders(event_id, exclude_status=OrderStatus.PENDING, table_id=table_id)

    def finances(self, event_id: str) -> List[TableFinances]:
        """Accepted consumption of an event grouped per table"""
        grouped: Dict[str, TableFinances] = {}
        for order in self.orders.list_orders(event_id, status=OrderStatus.ACCEPTED):
            entry = grouped.setdefault(order.table_id, TableFinances(
                table_id=order.table_id,
                table_number=order.table_number,
                items=[],
                total=Decimal("0"),
            ))
            entry.items.extend(order.items)
            entry.total += order.total
        return sorted(grouped.values(), key=lambda t: (t.table_number is None, t.table_number or 0))


def grand_total(tables: List[TableFinances]) -> Decimal:
    return sum((table.total for table in tables), Decimal("0"))
