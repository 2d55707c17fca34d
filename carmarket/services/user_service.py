"""
User directory service: registration, retrieval, profile updates and
activation.

Business rules enforced here:
- Email is unique across every role; national ID and tax ID are unique
  within their role.
- Role is fixed at registration and never updated.
- Accounts are retired by deactivation; rows are never removed.
- Error messages never echo passwords, national IDs or tax IDs.
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
from carmarket.core.security import hash_password
from carmarket.models.user import User, UserRole
from carmarket.repositories.user_repository import UserRepository
from carmarket.schemas.user import BuyerCreate, DealershipCreate, UserUpdate

logger = logging.getLogger(__name__)

NATIONAL_ID_MIN_LENGTH = 6
NATIONAL_ID_MAX_LENGTH = 9


class UserService:
    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing UserService")
        self._repo = UserRepository(conn)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> User:
        """Return a user or raise NotFoundError."""
        logger.info("Fetching user id=%s", user_id)
        user = self._repo.get_by_id(user_id)
        if not user:
            logger.warning("User id=%s not found", user_id)
            raise NotFoundError(f"User with id={user_id} not found")
        return user

    def _get_active_with_role(self, user_id: int, role: UserRole) -> User:
        user = self._repo.get_by_id(user_id)
        if not user or user.role != role or not user.is_active:
            logger.warning("Active %s id=%s not found", role.value, user_id)
            raise NotFoundError(f"{role.value.capitalize()} with id={user_id} not found")
        return user

    def get_buyer(self, user_id: int) -> User:
        """Return an active buyer; inactive or non-buyer accounts count as missing."""
        return self._get_active_with_role(user_id, UserRole.BUYER)

    def get_dealership(self, user_id: int) -> User:
        """Return an active dealership; inactive or non-dealership accounts count as missing."""
        return self._get_active_with_role(user_id, UserRole.DEALERSHIP)

    def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        logger.info("Listing users role=%s", role)
        return self._repo.list_all(role=role)

    def search_dealerships(
        self,
        business_name: Optional[str] = None,
        city: Optional[str] = None,
        province: Optional[str] = None,
    ) -> list[User]:
        logger.info("Searching dealerships")
        return self._repo.search_dealerships(business_name, city, province)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _ensure_email_free(self, email: str, exclude_user_id: Optional[int] = None) -> None:
        existing = self._repo.get_by_email(email)
        if existing and existing.id != exclude_user_id:
            logger.warning("Duplicate email registration attempt")
            raise ConflictError("Email is already registered")

    def _validate_buyer_fields(self, national_id: str, address: Optional[str]) -> None:
        national_id = national_id.strip()
        if not NATIONAL_ID_MIN_LENGTH <= len(national_id) <= NATIONAL_ID_MAX_LENGTH:
            logger.warning("Rejected buyer national ID with invalid length")
            raise ValidationError(
                f"National ID must have between {NATIONAL_ID_MIN_LENGTH} "
                f"and {NATIONAL_ID_MAX_LENGTH} characters"
            )
        if not address or not address.strip():
            logger.warning("Rejected buyer with blank address")
            raise ValidationError("Address is required")

    def register_buyer(self, data: BuyerCreate) -> User:
        logger.info("Registering buyer")
        self._validate_buyer_fields(data.national_id, data.address)
        self._ensure_email_free(data.email)
        if self._repo.national_id_taken(data.national_id.strip()):
            logger.warning("Duplicate national ID registration attempt")
            raise ConflictError("National ID is already registered")

        user = self._repo.create_buyer(
            email=data.email,
            hashed_password=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            national_id=data.national_id.strip(),
            address=data.address.strip(),
        )
        logger.info("Buyer registered id=%s", user.id)
        return user

    def register_dealership(self, data: DealershipCreate) -> User:
        logger.info("Registering dealership")
        if not data.business_name.strip():
            logger.warning("Rejected dealership with blank business name")
            raise ValidationError("Business name is required")
        if not data.tax_id.strip():
            logger.warning("Rejected dealership with blank tax ID")
            raise ValidationError("Tax ID is required")
        self._ensure_email_free(data.email)
        if self._repo.tax_id_taken(data.tax_id.strip()):
            logger.warning("Duplicate tax ID registration attempt")
            raise ConflictError("Tax ID is already registered")

        user = self._repo.create_dealership(
            email=data.email,
            hashed_password=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone,
            business_name=data.business_name.strip(),
            tax_id=data.tax_id.strip(),
            address=data.address,
            city=data.city,
            province=data.province,
            description=data.description,
        )
        logger.info("Dealership registered id=%s", user.id)
        return user

    def register_admin(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> User:
        logger.info("Registering admin")
        self._ensure_email_free(email)
        user = self._repo.create_admin(
            email=email,
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
        )
        logger.info("Admin registered id=%s", user.id)
        return user

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_profile(self, user_id: int, data: UserUpdate, updated_by: User) -> User:
        """
        Apply a partial update to common and role-specific fields.
        Only the account owner or an admin may update a profile.
        """
        logger.info("Updating user id=%s", user_id)
        target = self.get_user(user_id)
        if updated_by.role != UserRole.ADMIN and updated_by.id != user_id:
            logger.warning(
                "User id=%s attempted to update user id=%s", updated_by.id, user_id
            )
            raise PermissionDeniedError("You can only update your own profile")

        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in updates:
            self._ensure_email_free(updates["email"], exclude_user_id=user_id)
        if "password" in updates:
            updates["hashed_password"] = hash_password(updates.pop("password"))
        for key in ("first_name", "last_name"):
            if key in updates and not updates[key].strip():
                logger.warning("Rejected blank %s for user id=%s", key, user_id)
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} cannot be blank")

        if target.role == UserRole.BUYER:
            if "national_id" in updates or "address" in updates:
                self._validate_buyer_fields(
                    updates.get("national_id", target.buyer.national_id),
                    updates.get("address", target.buyer.address),
                )
            if "national_id" in updates:
                updates["national_id"] = updates["national_id"].strip()
                if self._repo.national_id_taken(updates["national_id"], exclude_user_id=user_id):
                    logger.warning("Duplicate national ID on update for user id=%s", user_id)
                    raise ConflictError("National ID is already registered")
        elif target.role == UserRole.DEALERSHIP:
            if "business_name" in updates and not updates["business_name"].strip():
                logger.warning("Rejected blank business name for user id=%s", user_id)
                raise ValidationError("Business name is required")
            if "tax_id" in updates:
                updates["tax_id"] = updates["tax_id"].strip()
                if self._repo.tax_id_taken(updates["tax_id"], exclude_user_id=user_id):
                    logger.warning("Duplicate tax ID on update for user id=%s", user_id)
                    raise ConflictError("Tax ID is already registered")

        updated_user = self._repo.update(user_id, target.role, **updates)  # type: ignore[return-value]
        logger.info("User updated id=%s", user_id)
        return updated_user

    def set_active(self, user_id: int, active: bool, updated_by: User) -> User:
        """Activate or deactivate an account (admin only)."""
        logger.info("Setting user id=%s active=%s", user_id, active)
        if updated_by.role != UserRole.ADMIN:
            logger.warning("Non-admin id=%s attempted to change activation", updated_by.id)
            raise PermissionDeniedError("Only administrators can activate or deactivate accounts")
        self.get_user(user_id)
        self._repo.set_active(user_id, active)
        return self.get_user(user_id)
