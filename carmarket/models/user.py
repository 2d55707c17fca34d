"""
Domain model (plain Python dataclass) representing a User row from the DB.

Every account lives in ``users`` with a role tag. Role-specific attributes are
kept in side tables (``buyer_profiles``, ``dealership_profiles``) and hydrated
into the optional ``buyer`` / ``dealership`` fields; behavior dispatches on
``role``, never on the presence of a subclass.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    ADMIN = "admin"
    BUYER = "buyer"
    DEALERSHIP = "dealership"


@dataclass
class BuyerProfile:
    national_id: str
    address: Optional[str] = None


@dataclass
class DealershipProfile:
    business_name: str
    tax_id: str
    address: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    description: Optional[str] = None

    @property
    def full_address(self) -> str:
        parts = [p for p in (self.address, self.city, self.province) if p]
        return ", ".join(parts) if parts else "Address not specified"


@dataclass
class User:
    id: int
    email: str
    hashed_password: str
    first_name: str
    last_name: str
    phone: str
    role: UserRole
    is_active: bool
    registration_date: datetime
    created_at: datetime
    updated_at: datetime
    buyer: Optional[BuyerProfile] = None
    dealership: Optional[DealershipProfile] = None

    def __post_init__(self) -> None:
        logger.trace("Initialized User model id=%s", self.id)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        """Business name for dealerships, personal name for everyone else."""
        if self.role == UserRole.DEALERSHIP and self.dealership and self.dealership.business_name.strip():
            return self.dealership.business_name
        return self.full_name

    @classmethod
    def from_row(cls, row) -> "User":
        """
        Build a User from a sqlite3.Row produced by the repository's joined
        SELECT (users LEFT JOIN buyer_profiles LEFT JOIN dealership_profiles).
        """
        logger.trace("Hydrating User from database row")
        role = UserRole(row["role"])
        buyer = None
        dealership = None
        if role == UserRole.BUYER and row["national_id"] is not None:
            buyer = BuyerProfile(
                national_id=row["national_id"],
                address=row["buyer_address"],
            )
        elif role == UserRole.DEALERSHIP and row["tax_id"] is not None:
            dealership = DealershipProfile(
                business_name=row["business_name"],
                tax_id=row["tax_id"],
                address=row["dealership_address"],
                city=row["city"],
                province=row["province"],
                description=row["dealership_description"],
            )
        return cls(
            id=row["id"],
            email=row["email"],
            hashed_password=row["hashed_password"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone=row["phone"],
            role=role,
            is_active=bool(row["is_active"]),
            registration_date=datetime.fromisoformat(row["registration_date"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            buyer=buyer,
            dealership=dealership,
        )
