"""
Catalog endpoints:
  POST  /cars                       – Register a car (admin or dealership)
  GET   /cars                       – List cars (optionally by availability)
  GET   /cars/search                – Conjunctive search over the catalog
  GET   /cars/{car_id}              – Get a car
  PATCH /cars/{car_id}              – Update a car (admin or dealership)
  POST  /cars/{car_id}/availability – List / delist a car (admin or dealership)
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
import logging

from carmarket.core.dependencies import db_dependency, require_dealership
from carmarket.models.user import User
from carmarket.schemas.car import (
    CarAvailabilityUpdate,
    CarCreate,
    CarResponse,
    CarSearchParams,
    CarUpdate,
)
from carmarket.services.car_service import CarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cars", tags=["Cars"])


@router.post(
    "",
    response_model=CarResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a car in the catalog",
)
def register_car(
    data: CarCreate,
    conn=Depends(db_dependency),
    _: User = Depends(require_dealership),
):
    """
    Add a car to the shared catalog.
    - Year must be after 1900 and no later than next year.
    - Brand, model, color and plate are required; mileage cannot be negative.
    """
    logger.info("Registering car")
    return CarService(conn).register_car(data)


@router.get(
    "",
    response_model=list[CarResponse],
    summary="List cars",
)
def list_cars(available: Optional[bool] = None, conn=Depends(db_dependency)):
    logger.info("Listing cars available=%s", available)
    return CarService(conn).list_cars(available=available)


@router.get(
    "/search",
    response_model=list[CarResponse],
    summary="Search the catalog",
)
def search_cars(params: CarSearchParams = Depends(), conn=Depends(db_dependency)):
    """Every supplied filter must match; omitted filters match everything."""
    logger.info("Searching cars")
    return CarService(conn).search_cars(params)


@router.get(
    "/{car_id}",
    response_model=CarResponse,
    summary="Get a car by ID",
)
def get_car(car_id: int, conn=Depends(db_dependency)):
    logger.info("Fetching car id=%s", car_id)
    return CarService(conn).get_car(car_id)


@router.patch(
    "/{car_id}",
    response_model=CarResponse,
    summary="Update a car",
)
def update_car(
    car_id: int,
    data: CarUpdate,
    conn=Depends(db_dependency),
    _: User = Depends(require_dealership),
):
    logger.info("Updating car id=%s", car_id)
    return CarService(conn).update_car(car_id, data)


@router.post(
    "/{car_id}/availability",
    response_model=CarResponse,
    summary="List or delist a car",
)
def set_car_availability(
    car_id: int,
    data: CarAvailabilityUpdate,
    conn=Depends(db_dependency),
    _: User = Depends(require_dealership),
):
    logger.info("Setting car id=%s available=%s", car_id, data.available)
    return CarService(conn).set_availability(car_id, data.available)
