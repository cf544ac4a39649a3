from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventdesk.utils.dates import as_utc

BookingStatusValue = Literal["confirmed", "pending", "cancelled", "completed"]


class VenueSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    location: str = ""
    capacity: Optional[int] = None
    hourly_rate: Optional[Decimal] = None
    facilities: list[str] = Field(default_factory=list)
    owner_id: Optional[int] = None
    is_active: bool = True

    @field_validator("facilities", mode="before")
    @classmethod
    def default_facilities(cls, value: Any) -> list[str]:
        return value or []


class BookingSchema(BaseModel):
    """A venue rental as shown on the schedule."""

    id: int
    venue_id: int
    customer_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatusValue
    payment_status: str = "unpaid"
    total_price: Optional[Decimal] = None
    venue_name: Optional[str] = None
    customer_name: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        # SQLite hands back naive values for timezone-aware columns; they are UTC.
        return as_utc(value)
