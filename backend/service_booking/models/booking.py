"""
Booking model: a customer's reservation of a provider's time for a service.

Key design decisions:
- The slot is the half-open window [scheduled_start, scheduled_end)
- Status is a string checked against the lifecycle states; bookings are
  never hard-deleted, cancelled/no-show rows stay as history
- The composite provider/window index serves the overlap query run by the
  interval conflict index; on PostgreSQL the migration adds an exclusion
  constraint over the same columns as a second line of defence
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, Text

from service_booking.core.intervals import TimeInterval
from service_booking.db.base import Base, TimestampMixin
from service_booking.models.enums import ACTIVE_BOOKING_STATUSES, BookingStatus, sql_in


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    scheduled_start = Column(DateTime(timezone=True), nullable=False)
    scheduled_end = Column(DateTime(timezone=True), nullable=False)

    address_line = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(2), nullable=True)

    agreed_price = Column(Numeric(10, 2), nullable=True)
    agreed_currency = Column(String(3), nullable=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    status_changed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("scheduled_start < scheduled_end", name="check_booking_window_non_empty"),
        CheckConstraint(f"status IN ({sql_in(BookingStatus)})", name="check_booking_status"),
        CheckConstraint(
            "agreed_price IS NULL OR agreed_price >= 0",
            name="check_booking_agreed_price_non_negative",
        ),
        Index("ix_bookings_provider_window", "provider_id", "scheduled_start", "scheduled_end"),
    )

    @property
    def time_range(self) -> TimeInterval:
        return TimeInterval(self.scheduled_start, self.scheduled_end)

    @property
    def is_active(self) -> bool:
        return self.status in {s.value for s in ACTIVE_BOOKING_STATUSES}

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, provider={self.provider_id}, status={self.status})>"
