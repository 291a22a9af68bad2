"""
Product-related Pydantic schemas
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

class ProductCreate(BaseModel):
    """Schema for adding a product to stock"""
    name: str = Field(min_length=1, max_length=255)
    stock: int = Field(default=0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    discounted_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)

class ProductUpdate(BaseModel):
    """Schema for editing a product"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    stock: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    discounted_price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)

class ProductRecord(BaseModel):
    id: str
    name: str
    stock: int
    price: Decimal
    discounted_price: Decimal

    class Config:
        from_attributes = True
