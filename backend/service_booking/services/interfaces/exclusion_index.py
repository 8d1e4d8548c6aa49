"""
Exclusion-constraint strategy - the database has the last word.
Relies on the PostgreSQL EXCLUDE constraint created by the initial migration.
"""

from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.intervals import TimeInterval
from service_booking.models.enums import BookingStatus
from service_booking.services.interfaces.interval_index import (
    IntervalIndex,
    find_overlapping,
    holds_slot,
    raise_conflict,
)


class ExclusionConstraintIntervalIndex(IntervalIndex):
    """
    No application lock - the GiST exclusion constraint rejects a racing
    overlapping row at flush/commit, and atomic() turns that violation into
    a ConflictError.

    The pre-check below only gives sequential callers an error that names
    the colliding bookings.

    Use when:
    - Running on PostgreSQL with btree_gist available
    - Many providers with little per-provider contention
    """

    async def reserve(
        self,
        db: AsyncSession,
        provider_id: int,
        interval: TimeInterval,
        booking_id: Optional[int],
        status: Union[BookingStatus, str],
    ) -> None:
        if not holds_slot(status):
            return
        colliding = await find_overlapping(db, provider_id, interval, exclude_booking_id=booking_id)
        if colliding:
            raise_conflict(provider_id, interval, colliding)

    async def release(self, db: AsyncSession, provider_id: int, booking_id: int) -> None:
        """Nothing to do - the constraint only covers active rows."""
