"""
Domain model representing a car_offers row from the DB.

``available`` is only flipped as a side effect of purchase transitions or an
explicit dealership delisting. ``version`` increases on every availability
change and on every purchase reservation, and is the optimistic-lock token.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENTS = Decimal("0.01")


@dataclass
class CarOffer:
    id: int
    car_id: int
    dealership_id: int
    price: Decimal
    offer_date: datetime
    available: bool
    version: int
    created_at: datetime
    updated_at: datetime
    dealership_notes: Optional[str] = None

    def __post_init__(self) -> None:
        import logging

        logger = logging.getLogger(__name__)
        logger.trace("Initialized CarOffer model id=%s", self.id)

    @classmethod
    def from_row(cls, row) -> "CarOffer":
        """Build a CarOffer from a sqlite3.Row object."""
        return cls(
            id=row["id"],
            car_id=row["car_id"],
            dealership_id=row["dealership_id"],
            price=Decimal(str(row["price"])).quantize(CENTS, rounding=ROUND_HALF_UP),
            offer_date=datetime.fromisoformat(row["offer_date"]),
            dealership_notes=row["dealership_notes"],
            available=bool(row["available"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
