"""
Review endpoints: submission through the review gate, comments, deletion.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from service_booking.db.session import get_db
from service_booking.schemas.review import (
    ReviewCommentCreate,
    ReviewCommentResponse,
    ReviewCreate,
    ReviewResponse,
)
from service_booking.services import review_service

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("/", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def submit_review(review_data: ReviewCreate, db: AsyncSession = Depends(get_db)):
    """Review a completed booking. One review per booking."""
    return await review_service.submit_review(
        db,
        review_data.booking_id,
        review_data.reviewer_id,
        review_data.provider_id,
        review_data.rating,
        review_data.text,
    )


@router.delete("/{review_id}", response_model=ReviewResponse)
async def delete_review(review_id: int, db: AsyncSession = Depends(get_db)):
    return await review_service.soft_delete_review(db, review_id)


@router.post(
    "/{review_id}/comments",
    response_model=ReviewCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    review_id: int,
    comment_data: ReviewCommentCreate,
    db: AsyncSession = Depends(get_db),
):
    return await review_service.add_comment(db, review_id, comment_data.author_id, comment_data.body)


@router.delete("/comments/{comment_id}", response_model=ReviewCommentResponse)
async def delete_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    return await review_service.soft_delete_comment(db, comment_id)
