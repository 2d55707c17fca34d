"""
Repository layer for User persistence.
All SQL for the `users`, `buyer_profiles` and `dealership_profiles` tables
lives here.
"""
import sqlite3
from typing import Optional
from datetime import datetime, timezone
import logging

from carmarket.models.user import User, UserRole
from carmarket.core.logging_config import log_db_timing

logger = logging.getLogger(__name__)

_SELECT_USER = """
SELECT
    u.*,
    b.national_id       AS national_id,
    b.address           AS buyer_address,
    d.business_name     AS business_name,
    d.tax_id            AS tax_id,
    d.address           AS dealership_address,
    d.city              AS city,
    d.province          AS province,
    d.description       AS dealership_description
FROM users u
LEFT JOIN buyer_profiles      b ON b.user_id = u.id
LEFT JOIN dealership_profiles d ON d.user_id = u.id
"""

_USER_COLUMNS = {"email", "hashed_password", "first_name", "last_name", "phone", "is_active"}
_BUYER_COLUMNS = {"national_id", "address"}
_DEALERSHIP_COLUMNS = {"business_name", "tax_id", "address", "city", "province", "description"}


class UserRepository:
    """Data access layer for user records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Store the database connection for query execution."""
        logger.trace("Initializing UserRepository")
        self._conn = conn

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @log_db_timing
    def get_by_id(self, user_id: int) -> Optional[User]:
        """Return a user by id or None if missing."""
        logger.trace("Fetching user by id=%s", user_id)
        row = self._conn.execute(
            _SELECT_USER + " WHERE u.id = ?", (user_id,)
        ).fetchone()
        return User.from_row(row) if row else None

    @log_db_timing
    def get_by_email(self, email: str) -> Optional[User]:
        """Return a user by email (case-insensitive)."""
        logger.trace("Fetching user by email")
        row = self._conn.execute(
            _SELECT_USER + " WHERE lower(u.email) = lower(?)", (email,)
        ).fetchone()
        return User.from_row(row) if row else None

    @log_db_timing
    def national_id_taken(self, national_id: str, exclude_user_id: Optional[int] = None) -> bool:
        """Return True if another buyer already uses this national ID."""
        row = self._conn.execute(
            "SELECT user_id FROM buyer_profiles WHERE national_id = ? AND user_id != ?",
            (national_id, exclude_user_id or 0),
        ).fetchone()
        return row is not None

    @log_db_timing
    def tax_id_taken(self, tax_id: str, exclude_user_id: Optional[int] = None) -> bool:
        """Return True if another dealership already uses this tax ID."""
        row = self._conn.execute(
            "SELECT user_id FROM dealership_profiles WHERE tax_id = ? AND user_id != ?",
            (tax_id, exclude_user_id or 0),
        ).fetchone()
        return row is not None

    @log_db_timing
    def list_all(self, role: Optional[UserRole] = None) -> list[User]:
        """Return users ordered by id, optionally restricted to one role."""
        logger.trace("Listing users role=%s", role)
        if role:
            rows = self._conn.execute(
                _SELECT_USER + " WHERE u.role = ? ORDER BY u.id", (role.value,)
            ).fetchall()
        else:
            rows = self._conn.execute(_SELECT_USER + " ORDER BY u.id").fetchall()
        return [User.from_row(r) for r in rows]

    @log_db_timing
    def search_dealerships(
        self,
        business_name: Optional[str] = None,
        city: Optional[str] = None,
        province: Optional[str] = None,
    ) -> list[User]:
        """Active dealerships matching every supplied filter, newest first."""
        logger.trace(
            "Searching dealerships business_name=%s city=%s province=%s",
            business_name, city, province,
        )
        clauses = ["u.role = 'dealership'", "u.is_active = 1"]
        params: list = []
        if business_name:
            clauses.append("lower(d.business_name) LIKE ?")
            params.append(f"%{business_name.lower()}%")
        if city:
            clauses.append("lower(d.city) = lower(?)")
            params.append(city)
        if province:
            clauses.append("lower(d.province) = lower(?)")
            params.append(province)
        rows = self._conn.execute(
            _SELECT_USER
            + " WHERE " + " AND ".join(clauses)
            + " ORDER BY u.registration_date DESC, u.id DESC",
            params,
        ).fetchall()
        return [User.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _insert_user(
        self,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        phone: str,
        role: UserRole,
    ) -> int:
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            """
            INSERT INTO users (
                email, hashed_password, first_name, last_name, phone, role,
                registration_date, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (email, hashed_password, first_name, last_name, phone, role.value, now, now, now),
        )
        return cursor.lastrowid  # type: ignore[return-value]

    @log_db_timing
    def create_admin(
        self,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        phone: str = "",
    ) -> User:
        """Insert an admin account (no side-table row)."""
        logger.info("Creating admin user record")
        user_id = self._insert_user(email, hashed_password, first_name, last_name, phone, UserRole.ADMIN)
        return self.get_by_id(user_id)  # type: ignore[return-value]

    @log_db_timing
    def create_buyer(
        self,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        phone: str,
        national_id: str,
        address: Optional[str] = None,
    ) -> User:
        """Insert a buyer account and its profile row."""
        logger.info("Creating buyer user record")
        user_id = self._insert_user(email, hashed_password, first_name, last_name, phone, UserRole.BUYER)
        self._conn.execute(
            "INSERT INTO buyer_profiles (user_id, national_id, address) VALUES (?, ?, ?)",
            (user_id, national_id, address),
        )
        return self.get_by_id(user_id)  # type: ignore[return-value]

    @log_db_timing
    def create_dealership(
        self,
        email: str,
        hashed_password: str,
        first_name: str,
        last_name: str,
        phone: str,
        business_name: str,
        tax_id: str,
        address: Optional[str] = None,
        city: Optional[str] = None,
        province: Optional[str] = None,
        description: Optional[str] = None,
    ) -> User:
        """Insert a dealership account and its profile row."""
        logger.info("Creating dealership user record business_name=%s", business_name)
        user_id = self._insert_user(email, hashed_password, first_name, last_name, phone, UserRole.DEALERSHIP)
        self._conn.execute(
            """
            INSERT INTO dealership_profiles (
                user_id, business_name, tax_id, address, city, province, description
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, business_name, tax_id, address, city, province, description),
        )
        return self.get_by_id(user_id)  # type: ignore[return-value]

    @log_db_timing
    def update(self, user_id: int, role: UserRole, **fields) -> Optional[User]:
        """
        Update common and role-specific fields and return the updated row.
        Keys are routed to ``users`` or to the side table of *role*; the role
        column itself is never written.
        """
        user_fields = {k: v for k, v in fields.items() if k in _USER_COLUMNS}
        if role == UserRole.BUYER:
            profile_table, profile_columns = "buyer_profiles", _BUYER_COLUMNS
        elif role == UserRole.DEALERSHIP:
            profile_table, profile_columns = "dealership_profiles", _DEALERSHIP_COLUMNS
        else:
            profile_table, profile_columns = None, set()
        profile_fields = {k: v for k, v in fields.items() if k in profile_columns}

        if not user_fields and not profile_fields:
            logger.trace("No user fields to update id=%s", user_id)
            return self.get_by_id(user_id)

        logger.info("Updating user record id=%s", user_id)
        user_fields["updated_at"] = datetime.now(tz=timezone.utc).isoformat()
        set_clause = ", ".join(f"{col} = ?" for col in user_fields)
        self._conn.execute(
            f"UPDATE users SET {set_clause} WHERE id = ?",
            list(user_fields.values()) + [user_id],
        )
        if profile_table and profile_fields:
            set_clause = ", ".join(f"{col} = ?" for col in profile_fields)
            self._conn.execute(
                f"UPDATE {profile_table} SET {set_clause} WHERE user_id = ?",
                list(profile_fields.values()) + [user_id],
            )
        return self.get_by_id(user_id)

    @log_db_timing
    def set_active(self, user_id: int, active: bool) -> bool:
        """Activate or deactivate an account. Rows are never deleted."""
        logger.info("Setting user id=%s active=%s", user_id, active)
        now = datetime.now(tz=timezone.utc).isoformat()
        cursor = self._conn.execute(
            "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
            (int(active), now, user_id),
        )
        return cursor.rowcount > 0
