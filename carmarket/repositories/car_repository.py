"""
Repository layer for Car persistence.
All SQL for the `cars` and `car_images` tables lives here.
"""
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
import logging

from carmarket.models.car import Car, FuelType, TransmissionType
from carmarket.core.logging_config import log_db_timing

logger = logging.getLogger(__name__)


def _escape_like(text: str) -> str:
    """Make LIKE wildcards in user input match literally (paired with ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class CarSearchFilters:
    """Conjunctive search filters; ``None`` means "match anything"."""

    keyword: Optional[str] = None
    brand: Optional[str] = None
    min_year: Optional[int] = None
    max_year: Optional[int] = None
    fuel_type: Optional[FuelType] = None
    transmission: Optional[TransmissionType] = None
    available: Optional[bool] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None


class CarRepository:
    """Data access layer for catalog records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing CarRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _images_for(self, car_ids: list[int]) -> dict[int, list[str]]:
        if not car_ids:
            return {}
        placeholders = ", ".join("?" for _ in car_ids)
        rows = self._conn.execute(
            f"""
            SELECT car_id, image_url FROM car_images
             WHERE car_id IN ({placeholders})
             ORDER BY car_id, position, id
            """,
            car_ids,
        ).fetchall()
        images: dict[int, list[str]] = {}
        for r in rows:
            images.setdefault(r["car_id"], []).append(r["image_url"])
        return images

    def _hydrate(self, rows) -> list[Car]:
        images = self._images_for([r["id"] for r in rows])
        return [Car.from_row(r, images.get(r["id"], [])) for r in rows]

    @log_db_timing
    def get_by_id(self, car_id: int) -> Optional[Car]:
        """Return a car by id or None if missing."""
        logger.trace("Fetching car id=%s", car_id)
        row = self._conn.execute("SELECT * FROM cars WHERE id = ?", (car_id,)).fetchone()
        return self._hydrate([row])[0] if row else None

    @log_db_timing
    def list_all(self, available: Optional[bool] = None) -> list[Car]:
        """Return cars ordered by publication date, newest first."""
        logger.trace("Listing cars available=%s", available)
        if available is None:
            rows = self._conn.execute(
                "SELECT * FROM cars ORDER BY publication_date DESC, id DESC"
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM cars WHERE available = ? ORDER BY publication_date DESC, id DESC",
                (int(available),),
            ).fetchall()
        return self._hydrate(rows)

    @log_db_timing
    def search(self, filters: CarSearchFilters) -> list[Car]:
        """Return cars matching every supplied filter."""
        logger.trace("Searching cars filters=%s", filters)
        clauses: list[str] = []
        params: list = []

        if filters.keyword:
            like = f"%{_escape_like(filters.keyword.lower())}%"
            clauses.append(
                "(lower(c.brand) LIKE ? ESCAPE '\\' "
                "OR lower(c.model) LIKE ? ESCAPE '\\' "
                "OR lower(COALESCE(c.description, '')) LIKE ? ESCAPE '\\')"
            )
            params.extend([like, like, like])
        if filters.brand:
            clauses.append("lower(c.brand) = lower(?)")
            params.append(filters.brand)
        if filters.min_year is not None:
            clauses.append("c.year >= ?")
            params.append(filters.min_year)
        if filters.max_year is not None:
            clauses.append("c.year <= ?")
            params.append(filters.max_year)
        if filters.fuel_type is not None:
            clauses.append("c.fuel_type = ?")
            params.append(filters.fuel_type.value)
        if filters.transmission is not None:
            clauses.append("c.transmission = ?")
            params.append(filters.transmission.value)
        if filters.available is not None:
            clauses.append("c.available = ?")
            params.append(int(filters.available))
        if filters.min_price is not None or filters.max_price is not None:
            # Cars carry no price; match against their currently open offers.
            offer_clauses = ["o.car_id = c.id", "o.available = 1"]
            if filters.min_price is not None:
                offer_clauses.append("o.price >= ?")
                params.append(float(filters.min_price))
            if filters.max_price is not None:
                offer_clauses.append("o.price <= ?")
                params.append(float(filters.max_price))
            clauses.append(
                "EXISTS (SELECT 1 FROM car_offers o WHERE " + " AND ".join(offer_clauses) + ")"
            )

        sql = "SELECT c.* FROM cars c"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY c.publication_date DESC, c.id DESC"
        rows = self._conn.execute(sql, params).fetchall()
        return self._hydrate(rows)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _replace_images(self, car_id: int, images: list[str]) -> None:
        self._conn.execute("DELETE FROM car_images WHERE car_id = ?", (car_id,))
        self._conn.executemany(
            "INSERT INTO car_images (car_id, image_url, position) VALUES (?, ?, ?)",
            [(car_id, url, position) for position, url in enumerate(images)],
        )

    @log_db_timing
    def create(
        self,
        brand: str,
        model: str,
        year: int,
        mileage: int,
        color: str,
        fuel_type: FuelType,
        transmission: TransmissionType,
        plate: str,
        description: Optional[str] = None,
        images: Optional[list[str]] = None,
    ) -> Car:
        """Insert a new car and return the created record."""
        logger.info("Creating car record brand=%s model=%s", brand, model)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            INSERT INTO cars (
                brand, model, year, mileage, color, fuel_type, transmission, plate,
                description, publication_date, available, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                brand, model, year, mileage, color, fuel_type.value, transmission.value,
                plate, description, now, now, now,
            ),
        )
        if images:
            self._replace_images(cursor.lastrowid, images)  # type: ignore[arg-type]
        return self.get_by_id(cursor.lastrowid)  # type: ignore[return-value]

    @log_db_timing
    def update(self, car_id: int, **fields) -> Optional[Car]:
        """Update car fields (``images`` replaces the whole list) and return the row."""
        images = fields.pop("images", None)
        for key in ("fuel_type", "transmission"):
            if key in fields and fields[key] is not None:
                fields[key] = fields[key].value
        if "available" in fields:
            fields["available"] = int(fields["available"])

        if not fields and images is None:
            logger.trace("No car fields to update id=%s", car_id)
            return self.get_by_id(car_id)

        logger.info("Updating car record id=%s", car_id)
        fields["updated_at"] = datetime.now(tz=timezone.utc).isoformat()
        set_clause = ", ".join(f"{col} = ?" for col in fields)
        self._conn.execute(
            f"UPDATE cars SET {set_clause} WHERE id = ?",
            list(fields.values()) + [car_id],
        )
        if images is not None:
            self._replace_images(car_id, images)
        return self.get_by_id(car_id)
