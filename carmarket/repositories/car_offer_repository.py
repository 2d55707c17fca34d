"""
Repository layer for CarOffer persistence.
All SQL for the `car_offers` table lives here.

Design rules enforced here:
  - availability changes are compare-and-set on ``version``; a write that
    returns False lost a race and the caller must re-read.
  - ``version`` is bumped by every availability flip and by every purchase
    reservation (see ``claim``).
"""
import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import logging

from carmarket.models.car_offer import CarOffer
from carmarket.core.logging_config import log_db_timing

logger = logging.getLogger(__name__)


class CarOfferRepository:
    """Data access layer for car offer records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing CarOfferRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, offer_id: int) -> Optional[CarOffer]:
        """Return an offer by id or None if missing."""
        logger.trace("Fetching car offer id=%s", offer_id)
        row = self._conn.execute(
            "SELECT * FROM car_offers WHERE id = ?", (offer_id,)
        ).fetchone()
        return CarOffer.from_row(row) if row else None

    @log_db_timing
    def get_by_car_and_dealership(self, car_id: int, dealership_id: int) -> Optional[CarOffer]:
        """
        Return the offer for a (car, dealership) pair, preferring the open one,
        then the most recent.
        """
        logger.trace("Fetching car offer car_id=%s dealership_id=%s", car_id, dealership_id)
        row = self._conn.execute(
            """
            SELECT * FROM car_offers
             WHERE car_id = ? AND dealership_id = ?
             ORDER BY available DESC, offer_date DESC, id DESC
             LIMIT 1
            """,
            (car_id, dealership_id),
        ).fetchone()
        return CarOffer.from_row(row) if row else None

    @log_db_timing
    def list_available(self) -> list[CarOffer]:
        """Return every offer currently open for purchase, newest first."""
        logger.trace("Listing available car offers")
        rows = self._conn.execute(
            "SELECT * FROM car_offers WHERE available = 1 ORDER BY offer_date DESC, id DESC"
        ).fetchall()
        return [CarOffer.from_row(r) for r in rows]

    @log_db_timing
    def list_by_dealership(self, dealership_id: int, available_only: bool = False) -> list[CarOffer]:
        logger.trace("Listing car offers dealership_id=%s available_only=%s", dealership_id, available_only)
        sql = "SELECT * FROM car_offers WHERE dealership_id = ?"
        if available_only:
            sql += " AND available = 1"
        rows = self._conn.execute(sql + " ORDER BY offer_date DESC, id DESC", (dealership_id,)).fetchall()
        return [CarOffer.from_row(r) for r in rows]

    @log_db_timing
    def list_by_car(self, car_id: int) -> list[CarOffer]:
        logger.trace("Listing car offers car_id=%s", car_id)
        rows = self._conn.execute(
            "SELECT * FROM car_offers WHERE car_id = ? ORDER BY price, id", (car_id,)
        ).fetchall()
        return [CarOffer.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @log_db_timing
    def create(
        self,
        car_id: int,
        dealership_id: int,
        price: Decimal,
        dealership_notes: Optional[str] = None,
    ) -> CarOffer:
        """Insert a new, available offer and return it."""
        logger.info("Creating car offer car_id=%s dealership_id=%s", car_id, dealership_id)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            INSERT INTO car_offers (
                car_id, dealership_id, price, offer_date, dealership_notes,
                available, version, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, 1, 0, ?, ?)
            """,
            (car_id, dealership_id, float(price), now, dealership_notes, now, now),
        )
        return self.get_by_id(cursor.lastrowid)  # type: ignore[return-value]

    @log_db_timing
    def update(self, offer_id: int, **fields) -> Optional[CarOffer]:
        """Update price and/or notes. Availability is never written here."""
        fields.pop("available", None)
        fields.pop("version", None)
        if "price" in fields and fields["price"] is not None:
            fields["price"] = float(fields["price"])
        if not fields:
            logger.trace("No car offer fields to update id=%s", offer_id)
            return self.get_by_id(offer_id)

        logger.info("Updating car offer id=%s", offer_id)
        fields["updated_at"] = datetime.now(tz=timezone.utc).isoformat()
        set_clause = ", ".join(f"{col} = ?" for col in fields)
        self._conn.execute(
            f"UPDATE car_offers SET {set_clause} WHERE id = ?",
            list(fields.values()) + [offer_id],
        )
        return self.get_by_id(offer_id)

    @log_db_timing
    def set_available(self, offer_id: int, available: bool, expected_version: int) -> bool:
        """Flip availability if the row is still at *expected_version*."""
        logger.info(
            "Setting car offer id=%s available=%s (expected version=%s)",
            offer_id, available, expected_version,
        )
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            UPDATE car_offers
               SET available = ?, version = version + 1, updated_at = ?
             WHERE id = ? AND version = ?
            """,
            (int(available), now, offer_id, expected_version),
        )
        return cursor.rowcount > 0

    @log_db_timing
    def claim(self, offer_id: int, expected_version: int) -> bool:
        """
        Reserve the offer for a new purchase: bump ``version`` only if the row
        is still available and unchanged since it was read.
        """
        logger.info("Claiming car offer id=%s (expected version=%s)", offer_id, expected_version)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            UPDATE car_offers
               SET version = version + 1, updated_at = ?
             WHERE id = ? AND version = ? AND available = 1
            """,
            (now, offer_id, expected_version),
        )
        return cursor.rowcount > 0
