"""
Database models package
"""

from .event import Event
from .table import Table
from .product import Product
from .order import Order, OrderItem

__all__ = ["Event", "Table", "Product", "Order", "OrderItem"]
