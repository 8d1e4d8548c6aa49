"""
End-to-end marketplace scenarios across validator, interval index,
state machine, review gate and audit trail.
"""

from decimal import Decimal

import pytest

from conftest import at
from service_booking.core.errors import ConflictError, ReviewRejectedError, ValidationError
from service_booking.models.enums import BookingStatus, UserStatus
from service_booking.services import audit_service, booking_service, entity_service, review_service, schedule_service


@pytest.mark.asyncio
async def test_book_conflict_complete_and_review(db_session, booking_data, customer, provider, service):
    assert service.base_price == Decimal("50.00")
    assert service.currency == "USD"

    first = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    assert first.status == BookingStatus.PENDING.value
    first_id = first.id

    with pytest.raises(ConflictError):
        await booking_service.create_booking(db_session, booking_data(at(10, 30), at(11, 30)))

    adjacent = await booking_service.create_booking(db_session, booking_data(at(11), at(12)))
    assert adjacent.status == BookingStatus.PENDING.value
    adjacent_id = adjacent.id

    await booking_service.transition_booking(db_session, first_id, BookingStatus.CONFIRMED, actor_id=provider.id)
    await booking_service.transition_booking(db_session, first_id, BookingStatus.COMPLETED, actor_id=provider.id)

    review = await review_service.submit_review(
        db_session, first_id, customer.id, provider.id, 5, actor_id=customer.id
    )
    assert review.rating == 5

    with pytest.raises(ReviewRejectedError) as exc_info:
        await review_service.submit_review(db_session, first_id, customer.id, provider.id, 5)
    assert exc_info.value.reason == "duplicate_review"

    trail = await audit_service.list_entries(db_session, table_name="bookings", record_id=first_id)
    assert [(e.before_snapshot or {}).get("status") for e in trail] == [None, "pending", "confirmed"]
    assert [e.after_snapshot["status"] for e in trail] == ["pending", "confirmed", "completed"]
    assert all(audit_service.verify_entry(e) for e in trail)

    agenda = await schedule_service.get_provider_schedule(db_session, provider.id)
    assert [entry.booking_id for entry in agenda] == [adjacent_id]
    history = await schedule_service.get_provider_schedule(db_session, provider.id, include_inactive=True)
    assert [entry.booking_id for entry in history] == [first_id, adjacent_id]
    assert history[0].customer_name == customer.full_name
    assert history[0].service_title == service.title
    assert history[0].location == "1 Main St, 12345, Springfield, US"


@pytest.mark.asyncio
async def test_suspended_provider_blocks_confirmation(db_session, booking_data, provider):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    booking_id = booking.id

    await entity_service.change_user_status(db_session, provider.id, UserStatus.SUSPENDED)

    with pytest.raises(ValidationError) as exc_info:
        await booking_service.transition_booking(
            db_session, booking_id, BookingStatus.CONFIRMED, actor_id=provider.id
        )
    assert exc_info.value.reason == "provider_not_active"

    stored = await booking_service.get_booking(db_session, booking_id)
    assert stored.status == BookingStatus.PENDING.value
    trail = await audit_service.list_entries(db_session, table_name="bookings", record_id=booking_id)
    assert [e.action for e in trail] == ["insert"]


@pytest.mark.asyncio
async def test_schedule_window_filter(db_session, booking_data, provider):
    await booking_service.create_booking(db_session, booking_data(at(8), at(9)))
    midday = await booking_service.create_booking(db_session, booking_data(at(12), at(13)))
    await booking_service.create_booking(db_session, booking_data(at(17), at(18)))

    agenda = await schedule_service.get_provider_schedule(db_session, provider.id, start=at(9), end=at(17))
    assert [entry.booking_id for entry in agenda] == [midday.id]
