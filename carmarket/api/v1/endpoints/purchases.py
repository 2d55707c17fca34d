"""
Purchase endpoints:
  POST /purchases                            – Open a PENDING purchase (buyer or admin)
  GET  /purchases                            – List all purchases (admin only)
  GET  /purchases/buyer/{buyer_id}           – Purchases of a buyer
  GET  /purchases/dealership/{dealership_id} – Purchases on a dealership's offers
  GET  /purchases/offer/{offer_id}           – Purchase history of an offer
  GET  /purchases/car/{car_id}               – Purchase history of a car
  GET  /purchases/{purchase_id}              – Get a purchase (parties and admins)
  GET  /purchases/{purchase_id}/summary      – Human-readable detail view
  POST /purchases/{purchase_id}/confirm      – PENDING → CONFIRMED
  POST /purchases/{purchase_id}/deliver      – CONFIRMED → DELIVERED
  POST /purchases/{purchase_id}/cancel       – PENDING|CONFIRMED → CANCELLED
  POST /purchases/{purchase_id}/pending      – CONFIRMED → PENDING (admin only)
"""
from fastapi import APIRouter, Depends, status
import logging

from carmarket.core.dependencies import (
    db_dependency,
    get_current_active_user,
    require_admin,
    require_buyer,
)
from carmarket.core.exceptions import PermissionDeniedError
from carmarket.models.user import User, UserRole
from carmarket.schemas.purchase import (
    PurchaseCreate,
    PurchaseResponse,
    PurchaseSummaryResponse,
)
from carmarket.services.purchase_service import PurchaseService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/purchases", tags=["Purchases"])


def _ensure_self_or_admin(current_user: User, user_id: int) -> None:
    if current_user.role != UserRole.ADMIN and current_user.id != user_id:
        logger.warning("User id=%s attempted to list purchases of user id=%s", current_user.id, user_id)
        raise PermissionDeniedError("You can only list your own purchases")


@router.post(
    "",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a purchase",
)
def create_purchase(
    data: PurchaseCreate,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_buyer),
):
    """
    Open a purchase in **PENDING** status. The offer stays available until the
    purchase is confirmed, but no second purchase can be opened on it.

    - Unknown offer or buyer → **404**.
    - Offer unavailable, already being purchased, or lost race → **409**.
    """
    logger.info("Creating purchase car_offer_id=%s", data.car_offer_id)
    return PurchaseService(conn).create_purchase(data, created_by=current_user)


@router.get(
    "",
    response_model=list[PurchaseResponse],
    summary="List all purchases",
)
def list_purchases(conn=Depends(db_dependency), _: User = Depends(require_admin)):
    logger.info("Listing purchases")
    return PurchaseService(conn).list_purchases()


@router.get(
    "/buyer/{buyer_id}",
    response_model=list[PurchaseResponse],
    summary="List purchases of a buyer",
)
def list_buyer_purchases(
    buyer_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    _ensure_self_or_admin(current_user, buyer_id)
    return PurchaseService(conn).list_by_buyer(buyer_id)


@router.get(
    "/dealership/{dealership_id}",
    response_model=list[PurchaseResponse],
    summary="List purchases on a dealership's offers",
)
def list_dealership_purchases(
    dealership_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    _ensure_self_or_admin(current_user, dealership_id)
    return PurchaseService(conn).list_by_dealership(dealership_id)


@router.get(
    "/offer/{offer_id}",
    response_model=list[PurchaseResponse],
    summary="Purchase history of an offer",
)
def list_offer_purchases(
    offer_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(require_admin),
):
    return PurchaseService(conn).list_by_offer(offer_id)


@router.get(
    "/car/{car_id}",
    response_model=list[PurchaseResponse],
    summary="Purchase history of a car",
)
def list_car_purchases(
    car_id: int,
    conn=Depends(db_dependency),
    _: User = Depends(require_admin),
):
    return PurchaseService(conn).list_by_car(car_id)


@router.get(
    "/{purchase_id}",
    response_model=PurchaseResponse,
    summary="Get a purchase by ID",
)
def get_purchase(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    logger.info("Fetching purchase id=%s", purchase_id)
    return PurchaseService(conn).get_visible_purchase(purchase_id, viewer=current_user)


@router.get(
    "/{purchase_id}/summary",
    response_model=PurchaseSummaryResponse,
    summary="Purchase detail view",
)
def get_purchase_summary(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    """Car full name, buyer name, dealership display name, price, date, status and payment."""
    service = PurchaseService(conn)
    service.get_visible_purchase(purchase_id, viewer=current_user)
    return service.summary(purchase_id)


@router.post(
    "/{purchase_id}/confirm",
    response_model=PurchaseResponse,
    summary="Confirm a purchase",
)
def confirm_purchase(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    """PENDING → CONFIRMED; the offer becomes unavailable."""
    logger.info("Confirming purchase id=%s", purchase_id)
    return PurchaseService(conn).confirm_purchase(purchase_id, actor=current_user)


@router.post(
    "/{purchase_id}/deliver",
    response_model=PurchaseResponse,
    summary="Mark a purchase delivered",
)
def deliver_purchase(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    logger.info("Delivering purchase id=%s", purchase_id)
    return PurchaseService(conn).deliver_purchase(purchase_id, actor=current_user)


@router.post(
    "/{purchase_id}/cancel",
    response_model=PurchaseResponse,
    summary="Cancel a purchase",
)
def cancel_purchase(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(get_current_active_user),
):
    """Any non-terminal purchase; the offer becomes available again."""
    logger.info("Cancelling purchase id=%s", purchase_id)
    return PurchaseService(conn).cancel_purchase(purchase_id, actor=current_user)


@router.post(
    "/{purchase_id}/pending",
    response_model=PurchaseResponse,
    summary="Revert a confirmed purchase to pending",
)
def revert_purchase_to_pending(
    purchase_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_admin),
):
    logger.info("Reverting purchase id=%s to pending", purchase_id)
    return PurchaseService(conn).revert_to_pending(purchase_id, actor=current_user)
