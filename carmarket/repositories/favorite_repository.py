"""
Repository layer for FavoriteCar persistence.
All SQL for the `favorite_cars` table lives here.

Design rules enforced at DB level:
  - (buyer_id, car_id) is UNIQUE  →  a buyer favorites a car at most once.
  - rating is NULL or within 0..10 →  enforced by a CHECK constraint.
"""
import sqlite3
from datetime import datetime, timezone
from typing import Optional
import logging

from carmarket.models.favorite_car import FavoriteCar
from carmarket.core.logging_config import log_db_timing

logger = logging.getLogger(__name__)


class FavoriteRepository:
    """Data access layer for favorite car records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing FavoriteRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, favorite_id: int) -> Optional[FavoriteCar]:
        logger.trace("Fetching favorite id=%s", favorite_id)
        row = self._conn.execute(
            "SELECT * FROM favorite_cars WHERE id = ?", (favorite_id,)
        ).fetchone()
        return FavoriteCar.from_row(row) if row else None

    @log_db_timing
    def get_by_buyer_and_car(self, buyer_id: int, car_id: int) -> Optional[FavoriteCar]:
        logger.trace("Fetching favorite buyer_id=%s car_id=%s", buyer_id, car_id)
        row = self._conn.execute(
            "SELECT * FROM favorite_cars WHERE buyer_id = ? AND car_id = ?",
            (buyer_id, car_id),
        ).fetchone()
        return FavoriteCar.from_row(row) if row else None

    @log_db_timing
    def list_by_buyer(self, buyer_id: int) -> list[FavoriteCar]:
        logger.trace("Listing favorites buyer_id=%s", buyer_id)
        rows = self._conn.execute(
            "SELECT * FROM favorite_cars WHERE buyer_id = ? ORDER BY date_added DESC, id DESC",
            (buyer_id,),
        ).fetchall()
        return [FavoriteCar.from_row(r) for r in rows]

    @log_db_timing
    def list_by_car(self, car_id: int) -> list[FavoriteCar]:
        logger.trace("Listing favorites car_id=%s", car_id)
        rows = self._conn.execute(
            "SELECT * FROM favorite_cars WHERE car_id = ? ORDER BY date_added DESC, id DESC",
            (car_id,),
        ).fetchall()
        return [FavoriteCar.from_row(r) for r in rows]

    @log_db_timing
    def rating_stats(self, car_id: int) -> dict:
        """
        Aggregate the ratings of one car.

        Returns ``{"total_reviews": int, "average_rating": float | None}``
        over rows with a non-null rating.
        """
        logger.trace("Aggregating ratings car_id=%s", car_id)
        row = self._conn.execute(
            """
            SELECT COUNT(rating) AS total_reviews,
                   AVG(rating)   AS average_rating
              FROM favorite_cars
             WHERE car_id = ? AND rating IS NOT NULL
            """,
            (car_id,),
        ).fetchone()
        return {
            "total_reviews": row["total_reviews"],
            "average_rating": row["average_rating"],
        }

    @log_db_timing
    def list_reviews_for_car(self, car_id: int) -> list[dict]:
        """Reviewed favorites of a car (rating present or non-blank comment) with buyer names."""
        logger.trace("Listing reviews car_id=%s", car_id)
        rows = self._conn.execute(
            """
            SELECT f.id          AS favorite_id,
                   f.buyer_id    AS buyer_id,
                   u.first_name  AS first_name,
                   u.last_name   AS last_name,
                   f.rating      AS rating,
                   f.comment     AS comment,
                   f.date_added  AS date_added
              FROM favorite_cars f
              JOIN users u ON u.id = f.buyer_id
             WHERE f.car_id = ?
               AND (f.rating IS NOT NULL OR TRIM(COALESCE(f.comment, '')) != '')
             ORDER BY f.date_added DESC, f.id DESC
            """,
            (car_id,),
        ).fetchall()
        return [
            {
                "favorite_id": r["favorite_id"],
                "buyer_id": r["buyer_id"],
                "buyer_name": f"{r['first_name']} {r['last_name']}".strip(),
                "rating": r["rating"],
                "comment": r["comment"],
                "date_added": datetime.fromisoformat(r["date_added"]),
            }
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @log_db_timing
    def create(
        self,
        buyer_id: int,
        car_id: int,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
        price_notifications: bool = False,
    ) -> FavoriteCar:
        """
        Insert a favorite.
        Raises sqlite3.IntegrityError if the (buyer, car) pair already exists.
        """
        logger.info("Creating favorite buyer_id=%s car_id=%s", buyer_id, car_id)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            INSERT INTO favorite_cars (
                buyer_id, car_id, date_added, rating, comment, price_notifications,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (buyer_id, car_id, now, rating, comment, int(price_notifications), now, now),
        )
        return self.get_by_id(cursor.lastrowid)  # type: ignore[return-value]

    @log_db_timing
    def update(self, favorite_id: int, **fields) -> Optional[FavoriteCar]:
        """Update rating / comment / price_notifications and return the row."""
        if "price_notifications" in fields:
            fields["price_notifications"] = int(fields["price_notifications"])
        if not fields:
            return self.get_by_id(favorite_id)

        logger.info("Updating favorite id=%s", favorite_id)
        fields["updated_at"] = datetime.now(tz=timezone.utc).isoformat()
        set_clause = ", ".join(f"{col} = ?" for col in fields)
        self._conn.execute(
            f"UPDATE favorite_cars SET {set_clause} WHERE id = ?",
            list(fields.values()) + [favorite_id],
        )
        return self.get_by_id(favorite_id)

    @log_db_timing
    def delete(self, favorite_id: int) -> bool:
        logger.info("Deleting favorite id=%s", favorite_id)
        cursor = self._conn.execute(
            "DELETE FROM favorite_cars WHERE id = ?", (favorite_id,)
        )
        logger.info("Favorite delete affected %s rows", cursor.rowcount)
        return cursor.rowcount > 0
