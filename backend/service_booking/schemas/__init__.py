from service_booking.schemas.audit import AuditLogEntryResponse
from service_booking.schemas.booking import BookingCreate, BookingResponse, BookingTransition, BookingUpdate
from service_booking.schemas.review import (
    RatingSummary,
    ReviewCommentCreate,
    ReviewCommentResponse,
    ReviewCreate,
    ReviewResponse,
)
from service_booking.schemas.schedule import ScheduleEntry

__all__ = [
    "AuditLogEntryResponse",
    "BookingCreate", "BookingUpdate", "BookingTransition", "BookingResponse",
    "ReviewCreate", "ReviewResponse", "ReviewCommentCreate", "ReviewCommentResponse", "RatingSummary",
    "ScheduleEntry",
]
