"""
Read model for the provider schedule (agenda) view.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from service_booking.models.enums import BookingStatus


class ScheduleEntry(BaseModel):
    booking_id: int
    provider_id: int
    provider_name: str
    customer_id: int
    customer_name: str
    service_id: int
    service_title: str
    status: BookingStatus
    scheduled_start: datetime
    scheduled_end: datetime
    location: Optional[str]
