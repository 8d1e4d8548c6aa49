"""
Booking endpoints: creation, edits, lifecycle transitions.
The acting user comes from the X-Actor-Id header (see api/middleware.py).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.db.session import get_db
from service_booking.models.enums import BookingStatus
from service_booking.schemas.booking import BookingCreate, BookingResponse, BookingTransition, BookingUpdate
from service_booking.services import booking_service

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a pending booking.

    Returns 409 when the provider already has an active booking overlapping
    the requested window, 422 when a party or the service is not eligible.
    """
    return await booking_service.create_booking(db, booking_data)


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    customer_id: Optional[int] = Query(None),
    provider_id: Optional[int] = Query(None),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.list_bookings(db, customer_id, provider_id, status_filter)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await booking_service.get_booking(db, booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    changes: BookingUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Reschedule or edit a booking that has not reached a terminal state."""
    return await booking_service.update_booking(db, booking_id, changes)


@router.post("/{booking_id}/transitions", response_model=BookingResponse)
async def transition_booking(
    booking_id: int,
    transition: BookingTransition,
    db: AsyncSession = Depends(get_db),
):
    """Confirm, complete, cancel or mark a booking as no-show."""
    return await booking_service.transition_booking(
        db, booking_id, transition.target_status, reason=transition.reason
    )
