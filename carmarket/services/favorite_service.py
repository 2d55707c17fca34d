"""
Favorites and reviews service.

Business rules:
  - A buyer favorites a given car at most once.
  - Rating, when present, is an integer from 0 to 10 inclusive.
  - Comments are at most 1000 characters; a blank comment is stored as NULL.
  - Only the owning buyer (or an admin) may change or remove a favorite.
  - Favorites never touch offers or purchases.
"""
import sqlite3
from typing import Optional
import logging

from carmarket.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.models.favorite_car import FavoriteCar
from carmarket.models.user import User, UserRole
from carmarket.repositories.car_repository import CarRepository
from carmarket.repositories.favorite_repository import FavoriteRepository
from carmarket.schemas.favorite import FavoriteCreate, ReviewUpdate
from carmarket.services.user_service import UserService

logger = logging.getLogger(__name__)

MIN_RATING = 0
MAX_RATING = 10
COMMENT_MAX_LENGTH = 1000


def validate_review(rating: Optional[int], comment: Optional[str]) -> None:
    if rating is not None and not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    if comment is not None and len(comment) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters")


def normalize_comment(comment: Optional[str]) -> Optional[str]:
    if comment is None or not comment.strip():
        return None
    return comment


class FavoriteService:
    """Business logic for buyer favorites and reviews."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing FavoriteService")
        self._repo = FavoriteRepository(conn)
        self._car_repo = CarRepository(conn)
        self._users = UserService(conn)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_favorite(self, favorite_id: int) -> FavoriteCar:
        logger.info("Fetching favorite id=%s", favorite_id)
        favorite = self._repo.get_by_id(favorite_id)
        if not favorite:
            logger.warning("Favorite id=%s not found", favorite_id)
            raise NotFoundError(f"Favorite with id={favorite_id} not found")
        return favorite

    def list_by_buyer(self, buyer_id: int) -> list[FavoriteCar]:
        logger.info("Listing favorites buyer_id=%s", buyer_id)
        return self._repo.list_by_buyer(buyer_id)

    def list_by_car(self, car_id: int) -> list[FavoriteCar]:
        logger.info("Listing favorites car_id=%s", car_id)
        return self._repo.list_by_car(car_id)

    def car_review_summary(self, car_id: int) -> dict:
        """
        Review aggregation for one car.

        ``total_reviews`` and ``average_rating`` cover rows with a rating;
        ``reviews`` lists every reviewed row (rating or non-blank comment).
        """
        logger.info("Building review summary car_id=%s", car_id)
        if not self._car_repo.get_by_id(car_id):
            logger.warning("Car id=%s not found for review summary", car_id)
            raise NotFoundError(f"Car with id={car_id} not found")
        stats = self._repo.rating_stats(car_id)
        average = stats["average_rating"]
        return {
            "car_id": car_id,
            "total_reviews": stats["total_reviews"],
            "average_rating": round(float(average), 2) if average is not None else 0.0,
            "reviews": self._repo.list_reviews_for_car(car_id),
        }

    # ------------------------------------------------------------------
    # Create / delete
    # ------------------------------------------------------------------

    def add_favorite(self, data: FavoriteCreate, created_by: User) -> FavoriteCar:
        buyer_id = data.buyer_id
        if created_by.role == UserRole.BUYER:
            if buyer_id is not None and buyer_id != created_by.id:
                logger.warning(
                    "Buyer id=%s attempted to favorite for buyer id=%s", created_by.id, buyer_id
                )
                raise PermissionDeniedError("Buyers can only manage their own favorites")
            buyer_id = created_by.id
        elif created_by.role != UserRole.ADMIN:
            logger.warning("User id=%s attempted to add a favorite", created_by.id)
            raise PermissionDeniedError("Only buyers can add favorites")
        if buyer_id is None:
            raise ValidationError("buyer_id is required")

        logger.info("Adding favorite buyer_id=%s car_id=%s", buyer_id, data.car_id)
        try:
            validate_review(data.rating, data.comment)
        except ValidationError as exc:
            logger.warning("Favorite rejected: %s", exc.detail)
            raise

        if not self._car_repo.get_by_id(data.car_id):
            logger.warning("Car id=%s not found for favorite", data.car_id)
            raise NotFoundError(f"Car with id={data.car_id} not found")
        self._users.get_buyer(buyer_id)

        if self._repo.get_by_buyer_and_car(buyer_id, data.car_id):
            logger.warning("Duplicate favorite buyer_id=%s car_id=%s", buyer_id, data.car_id)
            raise ConflictError(f"Car id={data.car_id} is already a favorite of this buyer")
        try:
            favorite = self._repo.create(
                buyer_id=buyer_id,
                car_id=data.car_id,
                rating=data.rating,
                comment=normalize_comment(data.comment),
                price_notifications=data.price_notifications,
            )
        except sqlite3.IntegrityError as exc:
            logger.warning("Favorite insert hit unique constraint buyer_id=%s", buyer_id)
            raise ConflictError(
                f"Car id={data.car_id} is already a favorite of this buyer"
            ) from exc
        logger.info("Favorite created id=%s", favorite.id)
        return favorite

    def remove_favorite(self, favorite_id: int, removed_by: User) -> None:
        logger.info("Removing favorite id=%s", favorite_id)
        favorite = self.get_favorite(favorite_id)
        self._ensure_owner(favorite, removed_by)
        self._repo.delete(favorite_id)
        logger.info("Favorite removed id=%s", favorite_id)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_review(self, favorite_id: int, data: ReviewUpdate, updated_by: User) -> FavoriteCar:
        """
        Set rating and/or comment. Supplying ``rating: null`` clears the rating;
        a blank comment clears the comment.
        """
        logger.info("Updating review favorite id=%s", favorite_id)
        favorite = self.get_favorite(favorite_id)
        self._ensure_owner(favorite, updated_by)

        updates = data.model_dump(exclude_unset=True)
        try:
            validate_review(updates.get("rating"), updates.get("comment"))
        except ValidationError as exc:
            logger.warning("Review rejected favorite id=%s: %s", favorite_id, exc.detail)
            raise
        if "comment" in updates:
            updates["comment"] = normalize_comment(updates["comment"])
        return self._repo.update(favorite_id, **updates)  # type: ignore[return-value]

    def set_price_notifications(self, favorite_id: int, enabled: bool, updated_by: User) -> FavoriteCar:
        logger.info("Setting price notifications favorite id=%s enabled=%s", favorite_id, enabled)
        favorite = self.get_favorite(favorite_id)
        self._ensure_owner(favorite, updated_by)
        return self._repo.update(favorite_id, price_notifications=enabled)  # type: ignore[return-value]

    def toggle_price_notifications(self, favorite_id: int, updated_by: User) -> FavoriteCar:
        favorite = self.get_favorite(favorite_id)
        return self.set_price_notifications(
            favorite_id, not favorite.price_notifications, updated_by
        )

    def _ensure_owner(self, favorite: FavoriteCar, actor: User) -> None:
        if actor.role != UserRole.ADMIN and actor.id != favorite.buyer_id:
            logger.warning("User id=%s does not own favorite id=%s", actor.id, favorite.id)
            raise PermissionDeniedError("You can only manage your own favorites")
