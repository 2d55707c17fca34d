"""
Pydantic schemas for FavoriteCar request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class FavoriteCreate(BaseModel):
    car_id: int = Field(..., gt=0)
    buyer_id: Optional[int] = Field(
        None, gt=0, description="Defaults to the calling buyer"
    )
    rating: Optional[int] = None
    comment: Optional[str] = None
    price_notifications: bool = False


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = None


class PriceNotificationUpdate(BaseModel):
    enabled: bool


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class FavoriteResponse(BaseModel):
    id: int
    buyer_id: int
    car_id: int
    date_added: datetime
    rating: Optional[int]
    comment: Optional[str]
    price_notifications: bool
    is_reviewed: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReviewEntry(BaseModel):
    favorite_id: int
    buyer_id: int
    buyer_name: str
    rating: Optional[int]
    comment: Optional[str]
    date_added: datetime


class CarReviewSummary(BaseModel):
    car_id: int
    total_reviews: int
    average_rating: float
    reviews: list[ReviewEntry]
