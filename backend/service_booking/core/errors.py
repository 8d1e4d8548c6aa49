"""
Typed errors raised by the booking engine.

Every rejection carries a machine-readable ``reason`` (stable, part of the
public contract) plus optional structured ``details``. The HTTP layer maps
each class to a status code; StorageError is the only retryable one.
"""

from typing import Any, Optional

from sqlalchemy import exc as sa_exc

# Constraint names shared with the models and the migration
BOOKING_OVERLAP_CONSTRAINT = "excl_bookings_provider_active_overlap"
REVIEW_BOOKING_UNIQUE_CONSTRAINT = "uq_reviews_booking_id"


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    code = "booking_engine_error"
    retryable = False

    def __init__(self, reason: str, message: Optional[str] = None, **details: Any):
        self.reason = reason
        self.message = message or reason.replace("_", " ")
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "reason": self.reason,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(BookingEngineError):
    """A cross-entity precondition failed (role, status, inactive service)."""

    code = "validation_error"


class ReviewRejectedError(ValidationError):
    code = "review_rejected"


class ConflictError(BookingEngineError):
    """The requested window overlaps another active booking of the provider."""

    code = "conflict"

    def __init__(
        self,
        reason: str = "interval_overlap",
        message: Optional[str] = None,
        conflicting_booking_ids: Optional[list[int]] = None,
        **details: Any,
    ):
        self.conflicting_booking_ids = list(conflicting_booking_ids or [])
        super().__init__(
            reason,
            message or "Provider already has an active booking in this window",
            conflicting_booking_ids=self.conflicting_booking_ids,
            **details,
        )


class IllegalTransitionError(BookingEngineError):
    code = "illegal_transition"


class IntegrityError(BookingEngineError):
    """A referenced entity does not exist."""

    code = "integrity_error"


class StorageError(BookingEngineError):
    """The durability layer failed; the transaction was rolled back."""

    code = "storage_error"
    retryable = True

    def __init__(self, reason: str = "storage_unavailable", message: Optional[str] = None, **details: Any):
        super().__init__(reason, message or "Temporary storage failure, please try again", **details)


class AuditLogImmutableError(BookingEngineError):
    code = "audit_log_immutable"


def _constraint_name(error: sa_exc.IntegrityError) -> str:
    orig = getattr(error, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag is not None else None
    if name:
        return name
    # asyncpg exposes the name directly on the driver exception
    cause = getattr(orig, "__cause__", None)
    name = getattr(cause, "constraint_name", None) or getattr(orig, "constraint_name", None)
    return name or ""


def from_integrity_error(error: sa_exc.IntegrityError) -> BookingEngineError:
    """Translate a database integrity violation into an engine error."""
    name = _constraint_name(error)
    text = str(getattr(error, "orig", error))

    if name == BOOKING_OVERLAP_CONSTRAINT or BOOKING_OVERLAP_CONSTRAINT in text:
        return ConflictError()
    if (
        name == REVIEW_BOOKING_UNIQUE_CONSTRAINT
        or REVIEW_BOOKING_UNIQUE_CONSTRAINT in text
        or "reviews.booking_id" in text
    ):
        return ReviewRejectedError("duplicate_review", "A review already exists for this booking")
    return IntegrityError("integrity_violation", "Referenced record is missing or duplicated", constraint=name or None)


def outcome_for(error: Exception) -> str:
    """Metric outcome label for a failed mutation."""
    if isinstance(error, ConflictError):
        return "conflict"
    if isinstance(error, (ValidationError, IllegalTransitionError, IntegrityError)):
        return "rejected"
    return "error"
