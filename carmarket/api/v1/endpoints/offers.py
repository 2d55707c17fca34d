"""
Offer book endpoints:
  POST  /offers                           – List a catalog car for sale (dealership or admin)
  GET   /offers/available                 – All offers open for purchase
  GET   /offers/lookup                    – Offer for a (car, dealership) pair
  GET   /offers/car/{car_id}              – Every offer made on a car
  GET   /offers/dealership/{dealership_id} – Offers of one dealership
  GET   /offers/{offer_id}                – Get an offer
  PATCH /offers/{offer_id}                – Update price / notes (owning dealership)
  POST  /offers/{offer_id}/close          – Delist an unpurchased offer
  POST  /offers/{offer_id}/reopen         – Relist an unpurchased offer
"""
from fastapi import APIRouter, Depends, Query, status
import logging

from carmarket.core.dependencies import db_dependency, require_dealership
from carmarket.models.user import User
from carmarket.schemas.car_offer import CarOfferCreate, CarOfferResponse, CarOfferUpdate
from carmarket.services.car_offer_service import CarOfferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offers", tags=["Offers"])


@router.post(
    "",
    response_model=CarOfferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an offer",
)
def create_offer(
    data: CarOfferCreate,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_dealership),
):
    """
    Create an available offer for a catalog car.

    - Price must be greater than zero with at most two decimals (**400**).
    - Unknown car or dealership → **404**.
    - Delisted car, or an open offer already held by this dealership → **409**.
    """
    logger.info("Creating offer car_id=%s", data.car_id)
    return CarOfferService(conn).create_offer(data, created_by=current_user)


@router.get(
    "/available",
    response_model=list[CarOfferResponse],
    summary="List available offers",
)
def list_available_offers(conn=Depends(db_dependency)):
    logger.info("Listing available offers")
    return CarOfferService(conn).list_available()


@router.get(
    "/lookup",
    response_model=CarOfferResponse,
    summary="Find the offer of a dealership for a car",
)
def lookup_offer(
    car_id: int = Query(..., gt=0),
    dealership_id: int = Query(..., gt=0),
    conn=Depends(db_dependency),
):
    logger.info("Looking up offer car_id=%s dealership_id=%s", car_id, dealership_id)
    return CarOfferService(conn).find_by_car_and_dealership(car_id, dealership_id)


@router.get(
    "/car/{car_id}",
    response_model=list[CarOfferResponse],
    summary="List offers for a car",
)
def list_offers_for_car(car_id: int, conn=Depends(db_dependency)):
    logger.info("Listing offers car_id=%s", car_id)
    return CarOfferService(conn).list_by_car(car_id)


@router.get(
    "/dealership/{dealership_id}",
    response_model=list[CarOfferResponse],
    summary="List offers of a dealership",
)
def list_dealership_offers(
    dealership_id: int,
    available_only: bool = False,
    conn=Depends(db_dependency),
):
    logger.info("Listing offers dealership_id=%s", dealership_id)
    return CarOfferService(conn).list_by_dealership(dealership_id, available_only=available_only)


@router.get(
    "/{offer_id}",
    response_model=CarOfferResponse,
    summary="Get an offer by ID",
)
def get_offer(offer_id: int, conn=Depends(db_dependency)):
    logger.info("Fetching offer id=%s", offer_id)
    return CarOfferService(conn).get_offer(offer_id)


@router.patch(
    "/{offer_id}",
    response_model=CarOfferResponse,
    summary="Update an offer",
)
def update_offer(
    offer_id: int,
    data: CarOfferUpdate,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_dealership),
):
    """Partial update of price and/or notes. Availability is not editable here."""
    logger.info("Updating offer id=%s", offer_id)
    return CarOfferService(conn).update_offer(offer_id, data, updated_by=current_user)


@router.post(
    "/{offer_id}/close",
    response_model=CarOfferResponse,
    summary="Close an offer",
)
def close_offer(
    offer_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_dealership),
):
    """Refused with **409** once any purchase references the offer."""
    logger.info("Closing offer id=%s", offer_id)
    return CarOfferService(conn).close_offer(offer_id, closed_by=current_user)


@router.post(
    "/{offer_id}/reopen",
    response_model=CarOfferResponse,
    summary="Reopen an offer",
)
def reopen_offer(
    offer_id: int,
    conn=Depends(db_dependency),
    current_user: User = Depends(require_dealership),
):
    logger.info("Reopening offer id=%s", offer_id)
    return CarOfferService(conn).reopen_offer(offer_id, reopened_by=current_user)
