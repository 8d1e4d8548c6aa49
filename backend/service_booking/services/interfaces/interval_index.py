"""
Interval conflict index interface.
Allows swapping between different overlap-prevention approaches.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.errors import ConflictError
from service_booking.core.intervals import TimeInterval
from service_booking.core.logging import get_logger
from service_booking.core.metrics import record_interval_conflict
from service_booking.models.booking import Booking
from service_booking.models.enums import ACTIVE_BOOKING_STATUSES, BookingStatus

logger = get_logger(__name__)

ACTIVE_STATUS_VALUES = tuple(sorted(s.value for s in ACTIVE_BOOKING_STATUSES))


class IntervalIndex(ABC):
    """
    Keeps each provider's active bookings pairwise disjoint.

    Implementations:
    - LockingIntervalIndex: per-provider lock row, then overlap query (portable)
    - ExclusionConstraintIntervalIndex: PostgreSQL EXCLUDE constraint does the
      final check at commit, the overlap query only produces early, detailed errors
    """

    @abstractmethod
    async def reserve(
        self,
        db: AsyncSession,
        provider_id: int,
        interval: TimeInterval,
        booking_id: Optional[int],
        status: Union[BookingStatus, str],
    ) -> None:
        """
        Claim ``interval`` for ``booking_id`` (None for a booking not yet
        inserted). Must run in the same transaction as the write that makes
        the booking active.

        Raises:
            ConflictError: another active booking of the provider overlaps
        """

    async def lock(self, db: AsyncSession, provider_id: int) -> None:
        """
        Serialize this transaction against other writers for the provider
        before its preconditions are read. No-op unless the strategy has a
        lock of its own.
        """

    @abstractmethod
    async def release(self, db: AsyncSession, provider_id: int, booking_id: int) -> None:
        """
        Called in the transaction that moves a booking out of the active set.
        The slot is freed by the status change itself.
        """


def holds_slot(status: Union[BookingStatus, str]) -> bool:
    return BookingStatus(status) in ACTIVE_BOOKING_STATUSES


async def find_overlapping(
    db: AsyncSession,
    provider_id: int,
    interval: TimeInterval,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    """Active bookings of ``provider_id`` intersecting ``interval`` (half-open)."""
    query = select(Booking).where(
        Booking.provider_id == provider_id,
        Booking.status.in_(ACTIVE_STATUS_VALUES),
        Booking.scheduled_start < interval.end,
        Booking.scheduled_end > interval.start,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    result = await db.execute(query.order_by(Booking.scheduled_start))
    return list(result.scalars().all())


def raise_conflict(provider_id: int, interval: TimeInterval, colliding: list[Booking]) -> None:
    record_interval_conflict()
    logger.warning(
        "booking_conflict",
        provider_id=provider_id,
        requested=interval.as_dict(),
        conflicting_booking_ids=[b.id for b in colliding],
    )
    raise ConflictError(
        conflicting_booking_ids=[b.id for b in colliding],
        conflicting_intervals=[b.time_range.as_dict() for b in colliding],
    )
