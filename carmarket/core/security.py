"""
Password hashing and access-token handling.

Tokens are short-lived HS256 JWTs. The claims carry the user id (``sub``)
and the role the user held at issue time; a token whose role no longer
matches the stored user is rejected by ``core.dependencies``.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

from carmarket.core.config import settings
from carmarket.models.user import UserRole

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    logger.trace("Hashing account password")
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    logger.trace("Verifying account password")
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class AccessClaims:
    """Validated contents of an access token."""
    user_id: int
    role: UserRole
    expires_at: datetime


def create_access_token(
    user_id: int,
    role: UserRole,
    expires_minutes: Optional[int] = None,
) -> tuple[str, datetime]:
    """Sign an access token for *user_id*; returns the token and its expiry."""
    issued_at = datetime.now(tz=timezone.utc)
    lifetime = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expires_at = issued_at + timedelta(minutes=lifetime)
    claims = {
        "sub": str(user_id),
        "role": role.value,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    logger.info("Issued access token user id=%s role=%s", user_id, role.value)
    return token, expires_at


def decode_access_token(token: str) -> AccessClaims:
    """
    Verify signature and expiry, then check the claim shape.

    Raises:
        jose.JWTError: for a bad signature, an expired token, a token of
            another type, or missing/malformed ``sub`` and ``role`` claims.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise JWTError("Not an access token")
    try:
        user_id = int(payload["sub"])
        role = UserRole(payload["role"])
    except (KeyError, TypeError, ValueError) as exc:
        raise JWTError("Malformed access token claims") from exc
    return AccessClaims(
        user_id=user_id,
        role=role,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
