"""
Booking service: creation, updates and lifecycle transitions.

Every mutation is one transaction (``atomic``) running, in order:

    lock           -> provider schedule lock, taken before anything is read
    validator      -> cross-entity preconditions (roles, statuses, service)
    state machine  -> is the transition legal, may this actor perform it
    interval index -> per-provider check-and-claim of the time window
    write          -> status/fields plus explicit updated_at
    audit          -> before/after snapshots in the same transaction

Any failure rolls the whole unit back; nothing is retried here. Callers get
typed errors from service_booking.core.errors.
"""

import time
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.context import resolve_actor_id
from service_booking.core.errors import IllegalTransitionError, IntegrityError, outcome_for
from service_booking.core.intervals import TimeInterval
from service_booking.core.logging import get_logger
from service_booking.core.metrics import booking_latency, record_booking_attempt, record_transition
from service_booking.db.base import as_utc, utcnow
from service_booking.db.session import atomic
from service_booking.models.booking import Booking
from service_booking.models.catalog import Service
from service_booking.models.enums import BookingStatus
from service_booking.models.user import User
from service_booking.schemas.booking import BookingCreate, BookingUpdate
from service_booking.services import audit_service, validator
from service_booking.services.interfaces.interval_index import holds_slot
from service_booking.services.state_machine import (
    INITIAL_BOOKING_STATUS,
    assert_booking_transition,
    authorize_booking_write,
    authorize_transition,
    is_terminal,
)
from service_booking.services.strategy_factory import get_interval_index

logger = get_logger(__name__)

PARTY_FIELDS = ("customer_id", "provider_id", "service_id")
WINDOW_FIELDS = ("scheduled_start", "scheduled_end")


async def _load_actor(db: AsyncSession, actor_id: Optional[int]) -> Optional[User]:
    if actor_id is None:
        return None
    actor = await db.get(User, actor_id, populate_existing=True)
    if actor is None:
        raise IntegrityError("actor_not_found", f"Acting user {actor_id} not found", actor_id=actor_id)
    return actor


async def _get_booking_for_update(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise IntegrityError("booking_not_found", f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


async def create_booking(
    db: AsyncSession,
    booking_data: BookingCreate,
    actor_id: Optional[int] = None,
) -> Booking:
    """Create a pending booking after validation and an atomic slot claim."""
    actor_id = resolve_actor_id(actor_id)
    started = time.perf_counter()
    try:
        async with atomic(db):
            interval = TimeInterval(booking_data.scheduled_start, booking_data.scheduled_end)
            index = get_interval_index()
            # Lock before validating so no status change slips in before the write
            await index.lock(db, booking_data.provider_id)
            parties = await validator.validate(
                db, booking_data.customer_id, booking_data.provider_id, booking_data.service_id
            )
            authorize_booking_write(await _load_actor(db, actor_id), booking_data.customer_id, booking_data.provider_id)

            await index.reserve(
                db, booking_data.provider_id, interval, None, INITIAL_BOOKING_STATUS
            )

            agreed_currency = booking_data.agreed_currency
            if booking_data.agreed_price is not None and agreed_currency is None:
                agreed_currency = parties.service.currency

            now = utcnow()
            booking = Booking(
                customer_id=booking_data.customer_id,
                provider_id=booking_data.provider_id,
                service_id=booking_data.service_id,
                status=INITIAL_BOOKING_STATUS.value,
                scheduled_start=interval.start,
                scheduled_end=interval.end,
                address_line=booking_data.address_line,
                city=booking_data.city,
                postal_code=booking_data.postal_code,
                country=booking_data.country,
                agreed_price=booking_data.agreed_price,
                agreed_currency=agreed_currency.upper() if agreed_currency else None,
                notes=booking_data.notes,
                status_changed_at=now,
                created_at=now,
                updated_at=now,
            )
            db.add(booking)
            await db.flush()
            await audit_service.record_insert(db, booking, actor_id)
    except Exception as exc:
        record_booking_attempt(outcome_for(exc))
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        provider_id=booking.provider_id,
        customer_id=booking.customer_id,
        service_id=booking.service_id,
        window=interval.as_dict(),
    )
    return booking


async def transition_booking(
    db: AsyncSession,
    booking_id: int,
    target_status: Union[BookingStatus, str],
    actor_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> Booking:
    """
    Move a booking along its lifecycle.

    The validator runs on every transition, so a booking whose provider,
    customer or service has since been deactivated cannot move even when
    the transition itself is legal.
    """
    target = BookingStatus(target_status)
    actor_id = resolve_actor_id(actor_id)
    started = time.perf_counter()
    try:
        async with atomic(db):
            booking = await _get_booking_for_update(db, booking_id)
            index = get_interval_index()
            await index.lock(db, booking.provider_id)
            await validator.validate(db, booking.customer_id, booking.provider_id, booking.service_id)
            assert_booking_transition(booking.status, target)
            authorize_transition(await _load_actor(db, actor_id), booking, target)

            previous = booking.status
            if holds_slot(target):
                await index.reserve(db, booking.provider_id, booking.time_range, booking.id, target)
            elif holds_slot(previous):
                await index.release(db, booking.provider_id, booking.id)

            before = audit_service.snapshot(booking)
            now = utcnow()
            booking.status = target.value
            booking.status_changed_at = now
            booking.updated_at = now
            if target is BookingStatus.CANCELLED and reason:
                booking.cancellation_reason = reason
            await db.flush()
            await audit_service.record_update(db, booking, before, actor_id)
    except Exception as exc:
        record_transition(target.value, outcome_for(exc))
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_transition(target.value, "success")
    logger.info(
        "booking_transitioned",
        booking_id=booking.id,
        from_status=previous,
        to_status=target.value,
        actor_id=actor_id,
    )
    return booking


async def update_booking(
    db: AsyncSession,
    booking_id: int,
    changes: BookingUpdate,
    actor_id: Optional[int] = None,
) -> Booking:
    """
    Reschedule or edit a non-terminal booking.

    Party changes re-run the validator; window or provider changes re-claim
    the slot (the booking's own current window is excluded from the check).
    """
    fields = changes.model_dump(exclude_unset=True)
    actor_id = resolve_actor_id(actor_id)
    started = time.perf_counter()
    try:
        async with atomic(db):
            booking = await _get_booking_for_update(db, booking_id)
            if is_terminal(booking.status):
                raise IllegalTransitionError(
                    "booking_terminal",
                    f"Booking {booking.id} is {booking.status} and can no longer change",
                    booking_id=booking.id,
                    status=booking.status,
                )

            for key in WINDOW_FIELDS:
                if fields.get(key) is not None:
                    fields[key] = as_utc(fields[key])
            for key in PARTY_FIELDS + WINDOW_FIELDS:
                # None is not a valid value for these columns
                if key in fields and fields[key] is None:
                    del fields[key]
            changed = {k: v for k, v in fields.items() if _differs(getattr(booking, k), v)}
            if not changed:
                return booking

            customer_id = changed.get("customer_id", booking.customer_id)
            provider_id = changed.get("provider_id", booking.provider_id)
            service_id = changed.get("service_id", booking.service_id)
            interval = TimeInterval(
                changed.get("scheduled_start", booking.scheduled_start),
                changed.get("scheduled_end", booking.scheduled_end),
            )

            actor = await _load_actor(db, actor_id)
            authorize_booking_write(actor, booking.customer_id, booking.provider_id)

            parties = None
            if any(k in changed for k in PARTY_FIELDS):
                index = get_interval_index()
                for pid in sorted({booking.provider_id, provider_id}):
                    await index.lock(db, pid)
                parties = await validator.validate(db, customer_id, provider_id, service_id)
                authorize_booking_write(actor, customer_id, provider_id)

            if "provider_id" in changed or any(k in changed for k in WINDOW_FIELDS):
                await _reclaim_slot(db, booking, provider_id, interval)

            if changed.get("agreed_price") is not None and not (
                changed.get("agreed_currency") or booking.agreed_currency
            ):
                service = parties.service if parties else await db.get(Service, service_id)
                changed["agreed_currency"] = service.currency
            if changed.get("agreed_currency"):
                changed["agreed_currency"] = changed["agreed_currency"].upper()

            before = audit_service.snapshot(booking)
            for key, value in changed.items():
                setattr(booking, key, value)
            booking.updated_at = utcnow()
            await db.flush()
            await audit_service.record_update(db, booking, before, actor_id)
    except Exception as exc:
        record_booking_attempt(outcome_for(exc))
        raise
    finally:
        booking_latency.observe(time.perf_counter() - started)

    record_booking_attempt("success")
    logger.info("booking_updated", booking_id=booking.id, fields=sorted(changed))
    return booking


def _differs(current, new) -> bool:
    if current is None or new is None:
        return current is not new
    if hasattr(current, "tzinfo") and hasattr(new, "tzinfo"):
        return as_utc(current) != as_utc(new)
    return current != new


async def _reclaim_slot(db: AsyncSession, booking: Booking, provider_id: int, interval: TimeInterval) -> None:
    index = get_interval_index()
    old_provider_id = booking.provider_id
    if provider_id == old_provider_id:
        await index.reserve(db, provider_id, interval, booking.id, booking.status)
        return
    # Lock providers in id order so two swaps in opposite directions cannot deadlock
    for pid in sorted((old_provider_id, provider_id)):
        if pid == old_provider_id:
            await index.release(db, old_provider_id, booking.id)
        else:
            await index.reserve(db, provider_id, interval, booking.id, booking.status)


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise IntegrityError("booking_not_found", f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


async def list_bookings(
    db: AsyncSession,
    customer_id: Optional[int] = None,
    provider_id: Optional[int] = None,
    status: Optional[Union[BookingStatus, str]] = None,
) -> list[Booking]:
    """Bookings filtered by party and/or status, in schedule order."""
    query = select(Booking)
    if customer_id is not None:
        query = query.where(Booking.customer_id == customer_id)
    if provider_id is not None:
        query = query.where(Booking.provider_id == provider_id)
    if status is not None:
        query = query.where(Booking.status == BookingStatus(status).value)
    result = await db.execute(query.order_by(Booking.scheduled_start.asc(), Booking.id.asc()))
    return list(result.scalars().all())
