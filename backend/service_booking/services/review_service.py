"""
Review gate and review comments.

A review may only be attached to a completed booking, by that booking's
customer, naming that booking's provider, and only once per booking. The
pre-check for an existing review gives a clean rejection; the unique
constraint on reviews.booking_id settles concurrent submissions (atomic()
translates the violation into the same ``duplicate_review`` rejection).
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.core.context import resolve_actor_id
from service_booking.core.errors import IntegrityError, ReviewRejectedError
from service_booking.core.logging import get_logger
from service_booking.core.metrics import record_review_submission
from service_booking.db.base import utcnow
from service_booking.db.session import atomic
from service_booking.models.booking import Booking
from service_booking.models.enums import BookingStatus
from service_booking.models.review import Review, ReviewComment
from service_booking.models.user import User
from service_booking.services import audit_service

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _reject(reason: str, message: str, **details) -> ReviewRejectedError:
    logger.info("review_rejected", reason=reason, **details)
    return ReviewRejectedError(reason, message, **details)


async def submit_review(
    db: AsyncSession,
    booking_id: int,
    reviewer_id: int,
    provider_id: int,
    rating: int,
    text: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Review:
    actor_id = resolve_actor_id(actor_id)
    try:
        async with atomic(db):
            booking = await db.get(Booking, booking_id, populate_existing=True)
            if booking is None:
                raise _reject("booking_not_found", f"Booking {booking_id} not found", booking_id=booking_id)
            if booking.status != BookingStatus.COMPLETED.value:
                raise _reject(
                    "booking_not_completed",
                    "Only completed bookings can be reviewed",
                    booking_id=booking_id,
                    status=booking.status,
                )
            if reviewer_id != booking.customer_id:
                raise _reject(
                    "reviewer_not_customer",
                    "Only the booking's customer can review it",
                    booking_id=booking_id,
                    reviewer_id=reviewer_id,
                )
            if provider_id != booking.provider_id:
                raise _reject(
                    "provider_mismatch",
                    "Review provider does not match the booking",
                    booking_id=booking_id,
                    provider_id=provider_id,
                )
            if not MIN_RATING <= rating <= MAX_RATING:
                raise _reject("rating_out_of_range", "Rating must be between 1 and 5", rating=rating)

            existing = await db.execute(select(Review.id).where(Review.booking_id == booking_id))
            if existing.scalar_one_or_none() is not None:
                raise _reject("duplicate_review", "A review already exists for this booking", booking_id=booking_id)

            now = utcnow()
            review = Review(
                booking_id=booking_id,
                reviewer_id=reviewer_id,
                provider_id=provider_id,
                rating=rating,
                text=text,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            )
            db.add(review)
            await db.flush()
            await audit_service.record_insert(db, review, actor_id)
    except ReviewRejectedError:
        record_review_submission(accepted=False)
        raise

    record_review_submission(accepted=True)
    logger.info("review_submitted", review_id=review.id, booking_id=booking_id, rating=rating)
    return review


async def _get_live_review(db: AsyncSession, review_id: int) -> Review:
    review = await db.get(Review, review_id, populate_existing=True)
    if review is None or review.is_deleted:
        raise IntegrityError("review_not_found", f"Review {review_id} not found", review_id=review_id)
    return review


async def add_comment(
    db: AsyncSession,
    review_id: int,
    author_id: int,
    body: str,
    actor_id: Optional[int] = None,
) -> ReviewComment:
    """Comment on a live review. Deleted reviews take no new comments."""
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        await _get_live_review(db, review_id)
        author = await db.get(User, author_id)
        if author is None or author.is_deleted:
            raise IntegrityError("author_not_found", f"User {author_id} not found", author_id=author_id)

        now = utcnow()
        comment = ReviewComment(
            review_id=review_id,
            author_id=author_id,
            body=body,
            is_deleted=False,
            created_at=now,
            updated_at=now,
        )
        db.add(comment)
        await db.flush()
        await audit_service.record_insert(db, comment, actor_id)

    logger.info("review_comment_added", comment_id=comment.id, review_id=review_id)
    return comment


async def soft_delete_review(db: AsyncSession, review_id: int, actor_id: Optional[int] = None) -> Review:
    """Hide a review and every comment under it. Each row change is audited."""
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        review = await _get_live_review(db, review_id)
        now = utcnow()

        result = await db.execute(
            select(ReviewComment)
            .where(ReviewComment.review_id == review_id, ReviewComment.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        comments = list(result.scalars().all())
        for comment in comments:
            before = audit_service.snapshot(comment)
            comment.is_deleted = True
            comment.updated_at = now
            await db.flush()
            await audit_service.record_update(db, comment, before, actor_id)

        before = audit_service.snapshot(review)
        review.is_deleted = True
        review.updated_at = now
        await db.flush()
        await audit_service.record_update(db, review, before, actor_id)

    logger.info("review_deleted", review_id=review_id, comments_hidden=len(comments))
    return review


async def soft_delete_comment(db: AsyncSession, comment_id: int, actor_id: Optional[int] = None) -> ReviewComment:
    actor_id = resolve_actor_id(actor_id)
    async with atomic(db):
        comment = await db.get(ReviewComment, comment_id, populate_existing=True)
        if comment is None or comment.is_deleted:
            raise IntegrityError("comment_not_found", f"Comment {comment_id} not found", comment_id=comment_id)
        before = audit_service.snapshot(comment)
        comment.is_deleted = True
        comment.updated_at = utcnow()
        await db.flush()
        await audit_service.record_update(db, comment, before, actor_id)

    logger.info("review_comment_deleted", comment_id=comment_id)
    return comment


async def list_provider_reviews(db: AsyncSession, provider_id: int) -> list[Review]:
    result = await db.execute(
        select(Review)
        .where(Review.provider_id == provider_id, Review.is_deleted.is_(False))
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return list(result.scalars().all())


async def provider_rating_summary(db: AsyncSession, provider_id: int) -> dict:
    result = await db.execute(
        select(func.count(Review.id), func.avg(Review.rating)).where(
            Review.provider_id == provider_id,
            Review.is_deleted.is_(False),
        )
    )
    count, average = result.one()
    return {
        "provider_id": provider_id,
        "review_count": count,
        "average_rating": round(float(average), 2) if average is not None else None,
    }
