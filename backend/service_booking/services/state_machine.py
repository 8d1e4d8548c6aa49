"""Booking and user lifecycle state machines."""

from typing import Optional, Union

from service_booking.core.errors import IllegalTransitionError, ValidationError
from service_booking.models.booking import Booking
from service_booking.models.enums import BookingStatus, UserRole, UserStatus
from service_booking.models.user import User

INITIAL_BOOKING_STATUS = BookingStatus.PENDING

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
}

USER_TRANSITIONS = {
    UserStatus.PENDING: {UserStatus.ACTIVE, UserStatus.BLOCKED},
    UserStatus.ACTIVE: {UserStatus.SUSPENDED, UserStatus.BLOCKED},
    UserStatus.SUSPENDED: {UserStatus.ACTIVE, UserStatus.BLOCKED},
    UserStatus.BLOCKED: set(),
}

# What a booking participant may do; admins may do anything
PROVIDER_TARGETS = {
    BookingStatus.CONFIRMED,
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
}
CUSTOMER_TARGETS = {BookingStatus.CANCELLED}


def is_terminal(status: Union[BookingStatus, str]) -> bool:
    return not BOOKING_TRANSITIONS[BookingStatus(status)]


def assert_booking_transition(current: Union[BookingStatus, str], target: Union[BookingStatus, str]) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if target not in BOOKING_TRANSITIONS[current]:
        raise IllegalTransitionError(
            "illegal_booking_transition",
            f"Invalid booking transition: {current.value} -> {target.value}",
            current=current.value,
            target=target.value,
        )


def assert_user_transition(current: Union[UserStatus, str], target: Union[UserStatus, str]) -> None:
    current, target = UserStatus(current), UserStatus(target)
    if target not in USER_TRANSITIONS[current]:
        raise IllegalTransitionError(
            "illegal_user_transition",
            f"Invalid user status transition: {current.value} -> {target.value}",
            current=current.value,
            target=target.value,
        )


def authorize_transition(actor: Optional[User], booking: Booking, target: Union[BookingStatus, str]) -> None:
    """No actor means a system-initiated change, which is always allowed."""
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    target = BookingStatus(target)
    if actor.id == booking.provider_id and target in PROVIDER_TARGETS:
        return
    if actor.id == booking.customer_id and target in CUSTOMER_TARGETS:
        return
    raise ValidationError(
        "actor_not_permitted",
        f"User {actor.id} may not move booking {booking.id} to {target.value}",
        actor_id=actor.id,
        booking_id=booking.id,
        target=target.value,
    )


def authorize_booking_write(actor: Optional[User], customer_id: int, provider_id: int) -> None:
    """Bookings are written by their customer, their provider, an admin or the system."""
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    if actor.id in (customer_id, provider_id):
        return
    raise ValidationError(
        "actor_not_permitted",
        f"User {actor.id} may not write bookings for customer {customer_id}",
        actor_id=actor.id,
    )
