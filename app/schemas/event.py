"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator

from app.utils.clock import as_utc, from_venue_time

class EventCreate(BaseModel):
    """Schema for creating an event"""
    name: str = Field(min_length=1, max_length=255)
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return from_venue_time(value)

class EventUpdate(EventCreate):
    """Schema for editing an event; the form always resubmits every field"""

class EventRecord(BaseModel):
    """Event as returned by the event store"""
    id: str
    name: str
    start_time: datetime
    end_time: datetime
    is_active: bool = False
    created_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    class Config:
        from_attributes = True

class EventOverview(BaseModel):
    """Events split into the backoffice's current/future/past views"""
    current: List[EventRecord]
    future: List[EventRecord]
    past: List[EventRecord]
