"""
Database seeder – creates a default admin account on first startup.

⚠️  FOR DEVELOPMENT ONLY.
    Set SEED_ADMIN=false in production. Credentials come from ADMIN_EMAIL and
    ADMIN_PASSWORD (see carmarket/core/config.py).
"""
import logging

from carmarket.core.config import settings
from carmarket.db.database import get_db
from carmarket.repositories.user_repository import UserRepository
from carmarket.services.user_service import UserService

logger = logging.getLogger(__name__)

ADMIN_FIRST_NAME = "Default"
ADMIN_LAST_NAME = "Admin"


def seed_admin() -> None:
    """
    Insert the default admin user if it does not already exist.
    Safe to call on every startup – it is a no-op when the user is present.
    """
    with get_db() as conn:
        if UserRepository(conn).get_by_email(settings.ADMIN_EMAIL):
            logger.info("Seeder: admin user already exists – skipping.")
            return

        admin = UserService(conn).register_admin(
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            first_name=ADMIN_FIRST_NAME,
            last_name=ADMIN_LAST_NAME,
        )
        logger.info("Seeder: created default admin user id=%s (email: %s).", admin.id, admin.email)
