"""
Domain model representing a favorite_cars row from the DB.

One row per (buyer, car) pair, enforced by a UNIQUE constraint.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class FavoriteCar:
    id: int
    buyer_id: int
    car_id: int
    date_added: datetime
    price_notifications: bool
    created_at: datetime
    updated_at: datetime
    rating: Optional[int] = None
    comment: Optional[str] = None

    @property
    def is_reviewed(self) -> bool:
        return self.rating is not None or bool(self.comment and self.comment.strip())

    @classmethod
    def from_row(cls, row) -> "FavoriteCar":
        """Build a FavoriteCar from a sqlite3.Row object."""
        return cls(
            id=row["id"],
            buyer_id=row["buyer_id"],
            car_id=row["car_id"],
            date_added=datetime.fromisoformat(row["date_added"]),
            rating=row["rating"],
            comment=row["comment"],
            price_notifications=bool(row["price_notifications"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
