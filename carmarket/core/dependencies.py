"""
Request-scoped dependencies: the database unit of work, the authenticated
user, and role gates for the routers.
"""
from typing import Generator
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from carmarket.core.exceptions import PermissionDeniedError
from carmarket.core.security import decode_access_token
from carmarket.db.database import get_db
from carmarket.models.user import User, UserRole
from carmarket.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def db_dependency() -> Generator:
    """One connection and one transaction per request."""
    logger.trace("Opening request unit of work")
    with get_db() as conn:
        yield conn


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    conn=Depends(db_dependency),
) -> User:
    """
    Resolve the bearer token to a stored user.

    401 when the token does not verify, the user no longer exists, or the
    user's role changed since the token was issued.
    """
    try:
        claims = decode_access_token(token)
    except JWTError:
        logger.warning("Rejected bearer token")
        raise _unauthorized("Could not validate credentials")

    user = UserRepository(conn).get_by_id(claims.user_id)
    if user is None:
        logger.warning("Bearer token references missing user id=%s", claims.user_id)
        raise _unauthorized("Could not validate credentials")
    if user.role != claims.role:
        logger.warning("Bearer token role is stale for user id=%s", user.id)
        raise _unauthorized("Token no longer matches the account; log in again")
    logger.trace("Authenticated user id=%s", user.id)
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        logger.warning("Deactivated account id=%s used a valid token", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user account",
        )
    return current_user


def require_roles(*roles: UserRole):
    """
    Build a dependency admitting only active users holding one of *roles*.

    Ownership (which buyer, which dealership) is checked by the services;
    this gate only filters by role.
    """
    allowed = ", ".join(role.value for role in roles)

    def _gate(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in roles:
            logger.warning(
                "User id=%s with role %s denied; requires %s",
                current_user.id, current_user.role.value, allowed,
            )
            raise PermissionDeniedError(f"This action requires one of the roles: {allowed}")
        return current_user

    return _gate


require_admin = require_roles(UserRole.ADMIN)
require_buyer = require_roles(UserRole.ADMIN, UserRole.BUYER)
require_dealership = require_roles(UserRole.ADMIN, UserRole.DEALERSHIP)
