"""
Pydantic schemas for reviews and review comments.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    booking_id: int
    reviewer_id: int
    provider_id: int
    rating: int = Field(..., ge=1, le=5)
    text: Optional[str] = Field(None, max_length=5000)


class ReviewCommentCreate(BaseModel):
    author_id: int
    body: str = Field(..., min_length=1, max_length=5000)


class ReviewCommentResponse(BaseModel):
    id: int
    review_id: int
    author_id: int
    body: str
    is_deleted: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: int
    booking_id: int
    reviewer_id: int
    provider_id: int
    rating: int
    text: Optional[str]
    is_deleted: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingSummary(BaseModel):
    provider_id: int
    review_count: int
    average_rating: Optional[float]
