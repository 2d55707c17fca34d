"""
Favorites and reviews endpoints:
  POST   /favorites                               – Favorite a car (buyer or admin)
  GET    /favorites/buyer/{buyer_id}              – Favorites of a buyer
  GET    /favorites/car/{car_id}                  – Favorites of a car
  GET    /favorites/car/{car_id}/reviews          – Review summary of a car
  GET    /favorites/{favorite_id}                 – Get a favorite
  DELETE /favorites/{favorite_id}                 – Remove a favorite
  PATCH  /favorites/{favorite_id}/review          – Set rating and/or comment
  POST   /favorites/{favorite_id}/notifications   – Enable/disable price alerts
  POST   /favorites/{favorite_id}/notifications/toggle – Flip price alerts
"""
from fastapi import APIRouter, Depends, status
import logging

from carmarket.core.dependencies import db_dependency, get_current_active_user, require_buyer
from carmarket.models.user import User
from carmarket.schemas.favorite import (
    CarReviewSummary,
    FavoriteCreate,
    FavoriteResponse,
    PriceNotificationUpdate,
    ReviewUpdate,
)
from carmarket.services.favorite_service import FavoriteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.post(
    "",
    response_model=FavoriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a favorite",
)
def add_favorite(
    data: FavoriteCreate,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_buyer),
):
    """
    Bookmark a car, optionally with a review.
    - A buyer can favorite a car only once (**409**).
    - Rating must be within 0–10 (**400**).
    """
    logger.info("Adding favorite car_id=%s", data.car_id)
    return FavoriteService(conn).add_favorite(data, created_by=current_user)


@router.get(
    "/buyer/{buyer_id}",
    response_model=list[FavoriteResponse],
    summary="List favorites of a buyer",
)
def list_buyer_favorites(
    buyer_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(get_current_active_user),
):
    return FavoriteService(conn).list_by_buyer(buyer_id)


@router.get(
    "/car/{car_id}",
    response_model=list[FavoriteResponse],
    summary="List favorites of a car",
)
def list_car_favorites(
    car_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(get_current_active_user),
):
    return FavoriteService(conn).list_by_car(car_id)


@router.get(
    "/car/{car_id}/reviews",
    response_model=CarReviewSummary,
    summary="Review summary of a car",
)
def car_review_summary(car_id: int, conn=Depends(db_dependency)):
    """Count and average of ratings, plus every reviewed favorite with the buyer's name."""
    logger.info("Review summary requested car_id=%s", car_id)
    return FavoriteService(conn).car_review_summary(car_id)


@router.get(
    "/{favorite_id}",
    response_model=FavoriteResponse,
    summary="Get a favorite by ID",
)
def get_favorite(
    favorite_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(get_current_active_user),
):
    return FavoriteService(conn).get_favorite(favorite_id)


@router.delete(
    "/{favorite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a favorite",
)
def remove_favorite(
    favorite_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    logger.info("Removing favorite id=%s", favorite_id)
    FavoriteService(conn).remove_favorite(favorite_id, removed_by=current_user)


@router.patch(
    "/{favorite_id}/review",
    response_model=FavoriteResponse,
    summary="Update the review on a favorite",
)
def update_review(
    favorite_id: int,
    data: ReviewUpdate,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    """A blank comment clears the comment; `rating: null` clears the rating."""
    logger.info("Updating review favorite id=%s", favorite_id)
    return FavoriteService(conn).update_review(favorite_id, data, updated_by=current_user)


@router.post(
    "/{favorite_id}/notifications",
    response_model=FavoriteResponse,
    summary="Enable or disable price notifications",
)
def set_price_notifications(
    favorite_id: int,
    data: PriceNotificationUpdate,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    return FavoriteService(conn).set_price_notifications(
        favorite_id, data.enabled, updated_by=current_user
    )


@router.post(
    "/{favorite_id}/notifications/toggle",
    response_model=FavoriteResponse,
    summary="Toggle price notifications",
)
def toggle_price_notifications(
    favorite_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    return FavoriteService(conn).toggle_price_notifications(favorite_id, updated_by=current_user)
