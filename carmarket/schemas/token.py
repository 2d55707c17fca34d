"""
Pydantic schemas for the login response.
"""
from datetime import datetime

from pydantic import BaseModel

from carmarket.models.user import UserRole


class Token(BaseModel):
    """Bearer token plus what a client needs to route the user after login."""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user_id: int
    role: UserRole
