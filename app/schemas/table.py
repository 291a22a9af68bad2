"""
Table-related Pydantic schemas
"""

from pydantic import BaseModel, Field

class TableCreate(BaseModel):
    number: int = Field(ge=1)

class TableRecord(BaseModel):
    id: str
    number: int

    class Config:
        from_attributes = True
