"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from service_booking.db.base import as_utc
from service_booking.models.enums import BookingStatus


class BookingCreate(BaseModel):
    customer_id: int
    provider_id: int
    service_id: int
    scheduled_start: datetime
    scheduled_end: datetime
    address_line: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=120)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    agreed_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    agreed_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode="after")
    def check_window(self):
        if as_utc(self.scheduled_start) >= as_utc(self.scheduled_end):
            raise ValueError("scheduled_start must be before scheduled_end")
        return self


class BookingUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""

    customer_id: Optional[int] = None
    provider_id: Optional[int] = None
    service_id: Optional[int] = None
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    address_line: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=120)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=2)
    agreed_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    agreed_currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = Field(None, max_length=5000)


class BookingTransition(BaseModel):
    target_status: BookingStatus
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(BaseModel):
    id: int
    customer_id: int
    provider_id: int
    service_id: int
    status: BookingStatus
    scheduled_start: datetime
    scheduled_end: datetime
    address_line: Optional[str]
    city: Optional[str]
    postal_code: Optional[str]
    country: Optional[str]
    agreed_price: Optional[Decimal]
    agreed_currency: Optional[str]
    notes: Optional[str]
    cancellation_reason: Optional[str]
    status_changed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
