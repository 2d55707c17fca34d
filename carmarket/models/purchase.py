"""
Domain model representing a purchases row from the DB, plus the purchase
state table.

Allowed transitions:
    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> DELIVERED | CANCELLED | PENDING (administrative revert)
    DELIVERED, CANCELLED are terminal.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from carmarket.models.car_offer import CENTS


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (PurchaseStatus.DELIVERED, PurchaseStatus.CANCELLED)


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    CHECK = "CHECK"


ALLOWED_TRANSITIONS: dict[PurchaseStatus, frozenset[PurchaseStatus]] = {
    PurchaseStatus.PENDING: frozenset({PurchaseStatus.CONFIRMED, PurchaseStatus.CANCELLED}),
    PurchaseStatus.CONFIRMED: frozenset(
        {PurchaseStatus.DELIVERED, PurchaseStatus.CANCELLED, PurchaseStatus.PENDING}
    ),
    PurchaseStatus.DELIVERED: frozenset(),
    PurchaseStatus.CANCELLED: frozenset(),
}

# Statuses that still hold a claim on the offer.
ACTIVE_STATUSES = (PurchaseStatus.PENDING, PurchaseStatus.CONFIRMED)
# Statuses under which the offer is legitimately unavailable.
SOLD_STATUSES = (PurchaseStatus.CONFIRMED, PurchaseStatus.DELIVERED)


def can_transition(current: PurchaseStatus, target: PurchaseStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class Purchase:
    id: int
    buyer_id: int
    car_offer_id: int
    final_price: Decimal
    purchase_date: datetime
    status: PurchaseStatus
    payment_method: PaymentMethod
    created_at: datetime
    updated_at: datetime
    observations: Optional[str] = None

    def __post_init__(self) -> None:
        """Log the creation of the Purchase model instance."""
        import logging

        logger = logging.getLogger(__name__)
        logger.trace("Initialized Purchase model id=%s", self.id)

    @classmethod
    def from_row(cls, row) -> "Purchase":
        """Build a Purchase from a sqlite3.Row object."""
        import logging

        logger = logging.getLogger(__name__)
        logger.trace("Hydrating Purchase from database row")
        return cls(
            id=row["id"],
            buyer_id=row["buyer_id"],
            car_offer_id=row["car_offer_id"],
            final_price=Decimal(str(row["final_price"])).quantize(CENTS, rounding=ROUND_HALF_UP),
            purchase_date=datetime.fromisoformat(row["purchase_date"]),
            status=PurchaseStatus(row["status"]),
            payment_method=PaymentMethod(row["payment_method"]),
            observations=row["observations"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
