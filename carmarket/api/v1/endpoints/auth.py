"""
Authentication endpoints:
  POST /auth/login   – Exchange email and password for a bearer token
  GET  /auth/me      – Profile of the token's owner, including buyer/dealership details
"""
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
import logging

from carmarket.core.dependencies import db_dependency, get_current_active_user
from carmarket.models.user import User
from carmarket.schemas.token import Token
from carmarket.schemas.user import UserResponse
from carmarket.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token, summary="Log in")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    conn=Depends(db_dependency),
):
    """
    OAuth2 password form: send the account email as **username**.

    The response also carries the user id, role and token expiry so clients
    can route buyers and dealerships to their own views.
    """
    return AuthService(conn).login(form_data.username, form_data.password)


@router.get("/me", response_model=UserResponse, summary="Current user")
def read_current_user(current_user: User = Depends(get_current_active_user)):
    logger.info("Profile requested by user id=%s", current_user.id)
    return current_user
