"""
Product model
"""

from sqlalchemy import Column, Integer, String, Numeric

from app.core.db import Base
from app.models.event import new_id

class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, index=True)
    stock = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    discounted_price = Column(Numeric(10, 2), nullable=False, default=0)
