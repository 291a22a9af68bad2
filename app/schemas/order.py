"""
Order-related Pydantic schemas
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.utils.clock import as_utc

class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)

class OrderCreate(BaseModel):
    """Order placed from a table"""
    items: List[OrderItemCreate] = Field(min_length=1)

class OrderItemRecord(BaseModel):
    product_id: Optional[str] = None
    product_name: str
    quantity: int
    price_at_order: Decimal
    discounted_price_at_order: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.discounted_price_at_order

    class Config:
        from_attributes = True

class OrderRecord(BaseModel):
    id: str
    table_id: str
    table_number: Optional[int] = None
    event_id: str
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemRecord] = []

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

class TableFinances(BaseModel):
    """Accepted consumption of one table during an event"""
    table_id: str
    table_number: Optional[int] = None
    items: List[OrderItemRecord]
    total: Decimal
