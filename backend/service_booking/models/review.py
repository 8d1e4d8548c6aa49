"""
Reviews of completed bookings and the comment threads under them.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, SmallInteger, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from service_booking.core.errors import REVIEW_BOOKING_UNIQUE_CONSTRAINT
from service_booking.db.base import Base, TimestampMixin


class Review(Base, TimestampMixin):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    rating = Column(SmallInteger, nullable=False)
    text = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    comments = relationship(
        "ReviewComment",
        back_populates="review",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        # One review per booking, soft-deleted ones included
        UniqueConstraint("booking_id", name=REVIEW_BOOKING_UNIQUE_CONSTRAINT),
        CheckConstraint("rating BETWEEN 1 AND 5", name="check_review_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, booking={self.booking_id}, rating={self.rating})>"


class ReviewComment(Base, TimestampMixin):
    __tablename__ = "review_comments"

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    review = relationship("Review", back_populates="comments")

    def __repr__(self) -> str:
        return f"<ReviewComment(id={self.id}, review={self.review_id})>"
