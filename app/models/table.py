"""
Table model
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from app.core.db import Base
from app.models.event import new_id

class Table(Base):
    __tablename__ = "tables"

    id = Column(String(36), primary_key=True, default=new_id)
    number = Column(Integer, unique=True, nullable=False, index=True)

    # Relationships
    orders = relationship("Order", back_populates="table")
