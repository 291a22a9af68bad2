"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .order import *
from .product import *
from .table import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "EventCreate",
    "EventUpdate",
    "EventRecord",
    "EventOverview",
    "OrderStatus",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemRecord",
    "OrderRecord",
    "TableFinances",
    "ProductCreate",
    "ProductUpdate",
    "ProductRecord",
    "TableCreate",
    "TableRecord",
]
