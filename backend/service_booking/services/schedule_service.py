"""
Provider schedule: a denormalized, read-only agenda per provider.

Joins bookings with the provider and customer users and the service on
every call. Nothing is materialized, so there is no second copy of booking
state to keep consistent.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from service_booking.db.base import as_utc
from service_booking.models.booking import Booking
from service_booking.models.catalog import Service
from service_booking.models.user import User
from service_booking.schemas.schedule import ScheduleEntry
from service_booking.services.interfaces.interval_index import ACTIVE_STATUS_VALUES


def _location(booking: Booking) -> Optional[str]:
    parts = [booking.address_line, booking.postal_code, booking.city, booking.country]
    text = ", ".join(p for p in parts if p)
    return text or None


async def get_provider_schedule(
    db: AsyncSession,
    provider_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    include_inactive: bool = False,
) -> list[ScheduleEntry]:
    """
    Bookings of ``provider_id`` intersecting [start, end), in time order.
    Only active bookings unless ``include_inactive`` is set.
    """
    provider = aliased(User, name="provider")
    customer = aliased(User, name="customer")

    query = (
        select(Booking, provider.full_name, customer.full_name, Service.title)
        .join(provider, Booking.provider_id == provider.id)
        .join(customer, Booking.customer_id == customer.id)
        .join(Service, Booking.service_id == Service.id)
        .where(Booking.provider_id == provider_id)
    )
    if not include_inactive:
        query = query.where(Booking.status.in_(ACTIVE_STATUS_VALUES))
    if start is not None:
        query = query.where(Booking.scheduled_end > as_utc(start))
    if end is not None:
        query = query.where(Booking.scheduled_start < as_utc(end))

    result = await db.execute(query.order_by(Booking.scheduled_start.asc(), Booking.id.asc()))
    return [
        ScheduleEntry(
            booking_id=booking.id,
            provider_id=booking.provider_id,
            provider_name=provider_name,
            customer_id=booking.customer_id,
            customer_name=customer_name,
            service_id=booking.service_id,
            service_title=service_title,
            status=booking.status,
            scheduled_start=as_utc(booking.scheduled_start),
            scheduled_end=as_utc(booking.scheduled_end),
            location=_location(booking),
        )
        for booking, provider_name, customer_name, service_title in result.all()
    ]
