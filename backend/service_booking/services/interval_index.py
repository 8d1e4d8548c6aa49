"""
Interval conflict index backed by a per-provider lock row.

CONCURRENCY STRATEGY: Serialize per provider, then check
=========================================================

Problem:
  Two customers book overlapping windows with the same provider at once.
  Both transactions query "any active booking overlapping [s, e)?", both see
  none, both insert. Result: a double-booked provider.

Solution:
  Every transaction that makes a booking active for provider P first writes
  P's lock row:

    UPDATE provider_profiles SET schedule_version = schedule_version + 1
    WHERE user_id = :provider_id

  The write blocks any other transaction doing the same for P until the
  first one commits or rolls back (PostgreSQL row lock; SQLite database
  write lock). Only then does the overlap query run, so it sees every
  booking committed before the lock was granted. Check and insert are one
  atomic unit per provider; different providers never wait on each other.

  Booking operations take the lock before the validator reads the
  provider, customer and service. On SQLite a concurrent suspension or
  service deactivation (a write) therefore cannot commit between validation
  and the booking write; on PostgreSQL the validator's FOR SHARE reads do
  the same.

  The lock wait is bounded (lock_timeout / busy timeout) and a timeout
  surfaces as StorageError. Nothing here retries.

Why not SELECT ... FOR UPDATE on the overlapping bookings?
  When no overlapping row exists there is nothing to lock, which is exactly
  the racy case.
"""

from typing import Optional, Union

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.intervals import TimeInterval
from service_booking.core.logging import get_logger
from service_booking.db.base import utcnow
from service_booking.models.enums import BookingStatus, UserRole
from service_booking.models.user import ProviderProfile, User
from service_booking.services.interfaces.interval_index import (
    IntervalIndex,
    find_overlapping,
    holds_slot,
    raise_conflict,
)

logger = get_logger(__name__)


async def lock_provider_schedule(db: AsyncSession, provider_id: int) -> None:
    """Take the provider's schedule lock for the rest of the transaction."""
    result = await db.execute(
        update(ProviderProfile)
        .where(ProviderProfile.user_id == provider_id)
        .values(
            schedule_version=ProviderProfile.schedule_version + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Provider created without a profile; the insert takes the lock instead.
        # Unknown ids and non-providers are left for the validator to report.
        user = await db.get(User, provider_id)
        if user is None or user.role != UserRole.PROVIDER.value:
            return
        logger.info("provider_profile_created", provider_id=provider_id)
        db.add(ProviderProfile(user_id=provider_id, schedule_version=1))
        await db.flush()


class LockingIntervalIndex(IntervalIndex):
    async def lock(self, db: AsyncSession, provider_id: int) -> None:
        await lock_provider_schedule(db, provider_id)

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

        await lock_provider_schedule(db, provider_id)
        colliding = await find_overlapping(db, provider_id, interval, exclude_booking_id=booking_id)
        if colliding:
            raise_conflict(provider_id, interval, colliding)

        logger.debug(
            "slot_reserved",
            provider_id=provider_id,
            booking_id=booking_id,
            window=interval.as_dict(),
        )

    async def release(self, db: AsyncSession, provider_id: int, booking_id: int) -> None:
        # Orders the release with concurrent reservations for the provider
        await lock_provider_schedule(db, provider_id)
        logger.debug("slot_released", provider_id=provider_id, booking_id=booking_id)
