"""
Provider-facing read endpoints: agenda and review summary.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.db.session import get_db
from service_booking.schemas.review import RatingSummary, ReviewResponse
from service_booking.schemas.schedule import ScheduleEntry
from service_booking.services import review_service, schedule_service

router = APIRouter(prefix="/providers", tags=["Providers"])


@router.get("/{provider_id}/schedule", response_model=list[ScheduleEntry])
async def get_schedule(
    provider_id: int,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    """Provider agenda for [start, end). Computed per request, never cached."""
    return await schedule_service.get_provider_schedule(db, provider_id, start, end, include_inactive)


@router.get("/{provider_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(provider_id: int, db: AsyncSession = Depends(get_db)):
    return await review_service.list_provider_reviews(db, provider_id)


@router.get("/{provider_id}/reviews/summary", response_model=RatingSummary)
async def rating_summary(provider_id: int, db: AsyncSession = Depends(get_db)):
    return await review_service.provider_rating_summary(db, provider_id)
