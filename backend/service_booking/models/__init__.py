from service_booking.models.audit import AuditLogEntry
from service_booking.models.booking import Booking
from service_booking.models.catalog import Service, ServiceCategory
from service_booking.models.enums import (
    ACTIVE_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    AuditAction,
    BookingStatus,
    UserRole,
    UserStatus,
)
from service_booking.models.review import Review, ReviewComment
from service_booking.models.user import ProviderProfile, User

__all__ = [
    "AuditLogEntry",
    "Booking",
    "Service",
    "ServiceCategory",
    "Review",
    "ReviewComment",
    "ProviderProfile",
    "User",
    "AuditAction",
    "BookingStatus",
    "UserRole",
    "UserStatus",
    "ACTIVE_BOOKING_STATUSES",
    "TERMINAL_BOOKING_STATUSES",
]
