"""
Domain model representing a cars row from the DB.

Cars belong to the shared catalog, not to any single dealership.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class FuelType(str, Enum):
    GASOLINE = "GASOLINE"
    DIESEL = "DIESEL"
    ELECTRIC = "ELECTRIC"
    HYBRID = "HYBRID"


class TransmissionType(str, Enum):
    MANUAL = "MANUAL"
    AUTOMATIC = "AUTOMATIC"
    SEMI_AUTOMATIC = "SEMI_AUTOMATIC"


@dataclass
class Car:
    id: int
    brand: str
    model: str
    year: int
    mileage: int
    color: str
    fuel_type: FuelType
    transmission: TransmissionType
    plate: str
    publication_date: datetime
    available: bool
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    images: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Log the creation of the Car model instance."""
        import logging

        logger = logging.getLogger(__name__)
        logger.trace("Initialized Car model id=%s", self.id)

    @property
    def full_name(self) -> str:
        return f"{self.brand} {self.model} {self.year}"

    @classmethod
    def from_row(cls, row, images: Optional[list[str]] = None) -> "Car":
        """Build a Car from a sqlite3.Row object."""
        import logging

        logger = logging.getLogger(__name__)
        logger.trace("Hydrating Car from database row")
        return cls(
            id=row["id"],
            brand=row["brand"],
            model=row["model"],
            year=row["year"],
            mileage=row["mileage"],
            color=row["color"],
            fuel_type=FuelType(row["fuel_type"]),
            transmission=TransmissionType(row["transmission"]),
            plate=row["plate"],
            description=row["description"],
            publication_date=datetime.fromisoformat(row["publication_date"]),
            available=bool(row["available"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            images=list(images or []),
        )
