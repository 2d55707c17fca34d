"""
Authentication service: email/password check and token issuance.
"""
import sqlite3
import logging

from fastapi import HTTPException, status

from carmarket.core.security import create_access_token, verify_password
from carmarket.models.user import User
from carmarket.repositories.user_repository import UserRepository
from carmarket.schemas.token import Token

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing AuthService")
        self._users = UserRepository(conn)

    def authenticate(self, email: str, password: str) -> User:
        """
        Return the account for *email* (case-insensitive) if *password* matches.

        Unknown email and wrong password produce the same 401 so the response
        does not reveal which accounts exist.
        """
        user = self._users.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.warning("Rejected login attempt")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if not user.is_active:
            logger.warning("Deactivated account id=%s attempted login", user.id)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inactive user account",
            )
        return user

    def login(self, email: str, password: str) -> Token:
        logger.info("Processing login")
        user = self.authenticate(email, password)
        access_token, expires_at = create_access_token(user.id, user.role)
        logger.info("Login succeeded user id=%s role=%s", user.id, user.role.value)
        return Token(
            access_token=access_token,
            expires_at=expires_at,
            user_id=user.id,
            role=user.role,
        )
