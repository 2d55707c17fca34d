"""
Repository layer for Purchase persistence.
All SQL for the `purchases` table lives here.

Rows are never deleted; only ``status`` (and the non-status details
``payment_method`` / ``observations``) change after insert.
"""
import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import logging

from carmarket.models.purchase import (
    ACTIVE_STATUSES,
    PaymentMethod,
    Purchase,
    PurchaseStatus,
)
from carmarket.core.logging_config import log_db_timing

logger = logging.getLogger(__name__)


class PurchaseRepository:
    """Data access layer for purchase records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing PurchaseRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, purchase_id: int) -> Optional[Purchase]:
        """Return a purchase by id or None if missing."""
        logger.trace("Fetching purchase id=%s", purchase_id)
        row = self._conn.execute(
            "SELECT * FROM purchases WHERE id = ?", (purchase_id,)
        ).fetchone()
        return Purchase.from_row(row) if row else None

    @log_db_timing
    def list_all(self) -> list[Purchase]:
        logger.trace("Listing purchases")
        rows = self._conn.execute(
            "SELECT * FROM purchases ORDER BY purchase_date DESC, id DESC"
        ).fetchall()
        return [Purchase.from_row(r) for r in rows]

    @log_db_timing
    def list_by_buyer(self, buyer_id: int) -> list[Purchase]:
        logger.trace("Listing purchases buyer_id=%s", buyer_id)
        rows = self._conn.execute(
            "SELECT * FROM purchases WHERE buyer_id = ? ORDER BY purchase_date DESC, id DESC",
            (buyer_id,),
        ).fetchall()
        return [Purchase.from_row(r) for r in rows]

    @log_db_timing
    def list_by_dealership(self, dealership_id: int) -> list[Purchase]:
        logger.trace("Listing purchases dealership_id=%s", dealership_id)
        rows = self._conn.execute(
            """
            SELECT p.* FROM purchases p
              JOIN car_offers o ON o.id = p.car_offer_id
             WHERE o.dealership_id = ?
             ORDER BY p.purchase_date DESC, p.id DESC
            """,
            (dealership_id,),
        ).fetchall()
        return [Purchase.from_row(r) for r in rows]

    @log_db_timing
    def list_by_offer(self, offer_id: int) -> list[Purchase]:
        """Return the purchase history of an offer, most recent first."""
        logger.trace("Listing purchases car_offer_id=%s", offer_id)
        rows = self._conn.execute(
            "SELECT * FROM purchases WHERE car_offer_id = ? ORDER BY id DESC",
            (offer_id,),
        ).fetchall()
        return [Purchase.from_row(r) for r in rows]

    @log_db_timing
    def list_by_car(self, car_id: int) -> list[Purchase]:
        logger.trace("Listing purchases car_id=%s", car_id)
        rows = self._conn.execute(
            """
            SELECT p.* FROM purchases p
              JOIN car_offers o ON o.id = p.car_offer_id
             WHERE o.car_id = ?
             ORDER BY p.id DESC
            """,
            (car_id,),
        ).fetchall()
        return [Purchase.from_row(r) for r in rows]

    @log_db_timing
    def count_for_offer(self, offer_id: int, statuses: tuple[PurchaseStatus, ...]) -> int:
        """Count purchases on an offer whose status is one of *statuses*."""
        placeholders = ", ".join("?" for _ in statuses)
        row = self._conn.execute(
            f"""
            SELECT COUNT(*) AS n FROM purchases
             WHERE car_offer_id = ? AND status IN ({placeholders})
            """,
            [offer_id, *(s.value for s in statuses)],
        ).fetchone()
        return row["n"]

    def has_active_for_offer(self, offer_id: int) -> bool:
        return self.count_for_offer(offer_id, ACTIVE_STATUSES) > 0

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @log_db_timing
    def create(
        self,
        buyer_id: int,
        car_offer_id: int,
        final_price: Decimal,
        payment_method: PaymentMethod,
        observations: Optional[str] = None,
    ) -> Purchase:
        """Insert a PENDING purchase and return it."""
        logger.info("Creating purchase buyer_id=%s car_offer_id=%s", buyer_id, car_offer_id)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            INSERT INTO purchases (
                buyer_id, car_offer_id, final_price, purchase_date, status,
                payment_method, observations, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                buyer_id, car_offer_id, float(final_price), now,
                PurchaseStatus.PENDING.value, payment_method.value, observations, now, now,
            ),
        )
        return self.get_by_id(cursor.lastrowid)  # type: ignore[return-value]

    @log_db_timing
    def transition(
        self,
        purchase_id: int,
        expected: PurchaseStatus,
        target: PurchaseStatus,
    ) -> bool:
        """Compare-and-set the status; False when the row is no longer at *expected*."""
        logger.info(
            "Transitioning purchase id=%s %s -> %s", purchase_id, expected.value, target.value
        )
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            UPDATE purchases
               SET status = ?, updated_at = ?
             WHERE id = ? AND status = ?
            """,
            (target.value, now, purchase_id, expected.value),
        )
        return cursor.rowcount > 0
