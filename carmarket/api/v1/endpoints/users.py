"""
User directory endpoints:
  POST   /users/buyers                  – Public buyer sign-up
  POST   /users/dealerships             – Public dealership sign-up
  GET    /users                         – List users, optionally by role (admin only)
  GET    /users/dealerships/search      – Search active dealerships
  GET    /users/{user_id}               – Get a user
  PATCH  /users/{user_id}               – Update own profile (or any, as admin)
  POST   /users/{user_id}/activate      – Reactivate an account (admin only)
  POST   /users/{user_id}/deactivate    – Deactivate an account (admin only)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
import logging

from carmarket.core.dependencies import db_dependency, get_current_active_user, require_admin
from carmarket.models.user import User, UserRole
from carmarket.schemas.user import BuyerCreate, DealershipCreate, UserResponse, UserUpdate
from carmarket.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/buyers",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a buyer account",
)
def register_buyer(data: BuyerCreate, conn=Depends(db_dependency)):
    """
    Create a buyer account.
    - Email must be unique across all accounts (**409** otherwise).
    - National ID must be 6 to 9 characters and unique.
    """
    logger.info("Buyer registration requested")
    return UserService(conn).register_buyer(data)


@router.post(
    "/dealerships",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a dealership account",
)
def register_dealership(data: DealershipCreate, conn=Depends(db_dependency)):
    """Create a dealership account. Email and tax ID must be unique."""
    logger.info("Dealership registration requested")
    return UserService(conn).register_dealership(data)


@router.get(
    "",
    response_model=list[UserResponse],
    summary="List users",
)
def list_users(
    role: Optional[UserRole] = None,
    conn=Depends(db_dependency),
    _: User = Depends(require_admin),
):
    logger.info("Listing users role=%s", role)
    return UserService(conn).list_users(role=role)


@router.get(
    "/dealerships/search",
    response_model=list[UserResponse],
    summary="Search active dealerships",
)
def search_dealerships(
    business_name: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    province: Optional[str] = Query(None),
    conn=Depends(db_dependency),
    _: User = Depends(get_current_active_user),
):
    """Case-insensitive filters, all optional; newest dealerships first."""
    logger.info("Searching dealerships")
    return UserService(conn).search_dealerships(business_name, city, province)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user by ID",
)
def get_user(
    user_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(get_current_active_user),
):
    logger.info("Fetching user id=%s", user_id)
    return UserService(conn).get_user(user_id)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user profile",
)
def update_user(
    user_id: int,
    data: UserUpdate,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    """
    Partial update of common and role-specific fields.
    The role can never be changed. Non-admins may only update themselves.
    """
    logger.info("Updating user id=%s", user_id)
    return UserService(conn).update_profile(user_id, data, updated_by=current_user)


@router.post(
    "/{user_id}/activate",
    response_model=UserResponse,
    summary="Activate an account",
)
def activate_user(
    user_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_admin),
):
    logger.info("Activating user id=%s", user_id)
    return UserService(conn).set_active(user_id, True, updated_by=current_user)


@router.post(
    "/{user_id}/deactivate",
    response_model=UserResponse,
    summary="Deactivate an account",
)
def deactivate_user(
    user_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_admin),
):
    """Soft retirement; the row is kept and can be reactivated."""
    logger.info("Deactivating user id=%s", user_id)
    return UserService(conn).set_active(user_id, False, updated_by=current_user)
