"""
Tests for the review gate, comments and the provider rating summary.
"""

import pytest

from conftest import at
from service_booking.core.errors import IntegrityError, ReviewRejectedError
from service_booking.models.enums import BookingStatus
from service_booking.services import audit_service, booking_service, review_service


async def completed_booking(db, booking_data, start_hour=10):
    booking = await booking_service.create_booking(db, booking_data(at(start_hour), at(start_hour + 1)))
    await booking_service.transition_booking(db, booking.id, BookingStatus.CONFIRMED)
    return await booking_service.transition_booking(db, booking.id, BookingStatus.COMPLETED)


@pytest.mark.asyncio
async def test_pending_booking_cannot_be_reviewed(db_session, booking_data, customer, provider):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    with pytest.raises(ReviewRejectedError) as exc_info:
        await review_service.submit_review(db_session, booking.id, customer.id, provider.id, 5)
    assert exc_info.value.reason == "booking_not_completed"


@pytest.mark.asyncio
async def test_review_completed_booking_once(db_session, booking_data, customer, provider):
    booking = await completed_booking(db_session, booking_data)

    review = await review_service.submit_review(
        db_session, booking.id, customer.id, provider.id, 4, text="On time, tidy work"
    )
    assert review.rating == 4
    assert review.provider_id == provider.id
    booking_id, review_id = booking.id, review.id

    with pytest.raises(ReviewRejectedError) as exc_info:
        await review_service.submit_review(db_session, booking_id, customer.id, provider.id, 5)
    assert exc_info.value.reason == "duplicate_review"

    entries = await audit_service.list_entries(db_session, table_name="reviews", record_id=review_id)
    assert [e.action for e in entries] == ["insert"]


@pytest.mark.asyncio
async def test_review_gate_reasons(db_session, booking_data, customer, other_customer, provider, other_provider):
    booking = await completed_booking(db_session, booking_data)

    cases = [
        (dict(booking_id=999999, reviewer_id=customer.id, provider_id=provider.id, rating=5), "booking_not_found"),
        (dict(booking_id=booking.id, reviewer_id=other_customer.id, provider_id=provider.id, rating=5), "reviewer_not_customer"),
        (dict(booking_id=booking.id, reviewer_id=customer.id, provider_id=other_provider.id, rating=5), "provider_mismatch"),
        (dict(booking_id=booking.id, reviewer_id=customer.id, provider_id=provider.id, rating=6), "rating_out_of_range"),
        (dict(booking_id=booking.id, reviewer_id=customer.id, provider_id=provider.id, rating=0), "rating_out_of_range"),
    ]
    for kwargs, reason in cases:
        with pytest.raises(ReviewRejectedError) as exc_info:
            await review_service.submit_review(db_session, **kwargs)
        assert exc_info.value.reason == reason

    assert await review_service.list_provider_reviews(db_session, provider.id) == []


@pytest.mark.asyncio
async def test_cancelled_booking_cannot_be_reviewed(db_session, booking_data, customer, provider):
    booking = await booking_service.create_booking(db_session, booking_data(at(10), at(11)))
    await booking_service.transition_booking(db_session, booking.id, BookingStatus.CANCELLED)
    with pytest.raises(ReviewRejectedError) as exc_info:
        await review_service.submit_review(db_session, booking.id, customer.id, provider.id, 3)
    assert exc_info.value.reason == "booking_not_completed"


@pytest.mark.asyncio
async def test_soft_delete_review_hides_comments(db_session, booking_data, customer, provider):
    booking = await completed_booking(db_session, booking_data)
    review = await review_service.submit_review(db_session, booking.id, customer.id, provider.id, 2)
    reply = await review_service.add_comment(db_session, review.id, provider.id, "Sorry, we will do better")
    follow_up = await review_service.add_comment(db_session, review.id, customer.id, "Thanks")

    deleted = await review_service.soft_delete_review(db_session, review.id, actor_id=provider.id)
    assert deleted.is_deleted

    for comment in (reply, follow_up):
        entries = await audit_service.list_entries(db_session, table_name="review_comments", record_id=comment.id)
        assert [e.action for e in entries] == ["insert", "update"]
        assert entries[1].after_snapshot["is_deleted"] is True

    with pytest.raises(IntegrityError) as exc_info:
        await review_service.add_comment(db_session, review.id, customer.id, "Anyone there?")
    assert exc_info.value.reason == "review_not_found"

    assert await review_service.list_provider_reviews(db_session, provider.id) == []


@pytest.mark.asyncio
async def test_soft_delete_comment(db_session, booking_data, customer, provider):
    booking = await completed_booking(db_session, booking_data)
    review = await review_service.submit_review(db_session, booking.id, customer.id, provider.id, 5)
    comment = await review_service.add_comment(db_session, review.id, provider.id, "Thank you!")

    await review_service.soft_delete_comment(db_session, comment.id)
    with pytest.raises(IntegrityError):
        await review_service.soft_delete_comment(db_session, comment.id)


@pytest.mark.asyncio
async def test_rating_summary(db_session, booking_data, customer, provider):
    first = await completed_booking(db_session, booking_data, start_hour=9)
    second = await completed_booking(db_session, booking_data, start_hour=13)

    empty = await review_service.provider_rating_summary(db_session, provider.id)
    assert empty == {"provider_id": provider.id, "review_count": 0, "average_rating": None}

    await review_service.submit_review(db_session, first.id, customer.id, provider.id, 5)
    await review_service.submit_review(db_session, second.id, customer.id, provider.id, 2)

    summary = await review_service.provider_rating_summary(db_session, provider.id)
    assert summary["review_count"] == 2
    assert summary["average_rating"] == 3.5
