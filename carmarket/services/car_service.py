"""
Catalog service.

Business rules:
  - Cars belong to the shared catalog, not to a dealership.
  - Year must be after 1900 and no later than next calendar year.
  - Brand, model, color and plate are required; mileage cannot be negative.
  - Cars are never deleted; delisting sets ``available`` to False.
"""
import sqlite3
from datetime import datetime, timezone
from typing import Optional
import logging

from carmarket.core.exceptions import NotFoundError, ValidationError
from carmarket.models.car import Car
from carmarket.repositories.car_repository import CarRepository, CarSearchFilters
from carmarket.schemas.car import CarCreate, CarSearchParams, CarUpdate

logger = logging.getLogger(__name__)

MIN_YEAR_EXCLUSIVE = 1900
DESCRIPTION_MAX_LENGTH = 1000
_REQUIRED_TEXT_FIELDS = ("brand", "model", "color", "plate")


def validate_car_fields(fields: dict) -> None:
    """Check a complete set of car fields, raising ValidationError on the first problem."""
    for name in _REQUIRED_TEXT_FIELDS:
        value = fields.get(name)
        if value is None or not str(value).strip():
            raise ValidationError(f"{name.capitalize()} is required")

    max_year = datetime.now(tz=timezone.utc).year + 1
    year = fields["year"]
    if year <= MIN_YEAR_EXCLUSIVE or year > max_year:
        raise ValidationError(
            f"Year must be greater than {MIN_YEAR_EXCLUSIVE} and at most {max_year}"
        )
    if fields["mileage"] < 0:
        raise ValidationError("Mileage cannot be negative")

    description = fields.get("description")
    if description and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
        )
    for url in fields.get("images") or []:
        if not url.startswith(("http://", "https://")):
            raise ValidationError("Image URLs must start with http:// or https://")


class CarService:
    """Business logic for the car catalog."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing CarService")
        self._repo = CarRepository(conn)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_car(self, car_id: int) -> Car:
        """Return a car or raise NotFoundError."""
        logger.info("Fetching car id=%s", car_id)
        car = self._repo.get_by_id(car_id)
        if not car:
            logger.warning("Car id=%s not found", car_id)
            raise NotFoundError(f"Car with id={car_id} not found")
        return car

    def list_cars(self, available: Optional[bool] = None) -> list[Car]:
        logger.info("Listing cars available=%s", available)
        return self._repo.list_all(available=available)

    def list_available_cars(self) -> list[Car]:
        return self.list_cars(available=True)

    def search_cars(self, params: CarSearchParams) -> list[Car]:
        """Conjunctive search; absent filters match everything."""
        logger.info("Searching cars")
        if (
            params.min_year is not None
            and params.max_year is not None
            and params.min_year > params.max_year
        ):
            logger.warning("Rejected car search with inverted year range")
            raise ValidationError("min_year cannot be greater than max_year")
        if (
            params.min_price is not None
            and params.max_price is not None
            and params.min_price > params.max_price
        ):
            logger.warning("Rejected car search with inverted price range")
            raise ValidationError("min_price cannot be greater than max_price")
        keyword = params.keyword.strip() if params.keyword else None
        brand = params.brand.strip() if params.brand else None
        filters = CarSearchFilters(
            keyword=keyword or None,
            brand=brand or None,
            min_year=params.min_year,
            max_year=params.max_year,
            fuel_type=params.fuel_type,
            transmission=params.transmission,
            available=params.available,
            min_price=params.min_price,
            max_price=params.max_price,
        )
        return self._repo.search(filters)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def register_car(self, data: CarCreate) -> Car:
        logger.info("Registering car brand=%s model=%s", data.brand, data.model)
        fields = data.model_dump()
        try:
            validate_car_fields(fields)
        except ValidationError as exc:
            logger.warning("Car registration rejected: %s", exc.detail)
            raise

        car = self._repo.create(
            brand=data.brand.strip(),
            model=data.model.strip(),
            year=data.year,
            mileage=data.mileage,
            color=data.color.strip(),
            fuel_type=data.fuel_type,
            transmission=data.transmission,
            plate=data.plate.strip(),
            description=data.description,
            images=data.images,
        )
        logger.info("Car registered id=%s", car.id)
        return car

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_car(self, car_id: int, data: CarUpdate) -> Car:
        """Partial update, validated against the merged record."""
        logger.info("Updating car id=%s", car_id)
        car = self.get_car(car_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        merged = {
            "brand": car.brand,
            "model": car.model,
            "year": car.year,
            "mileage": car.mileage,
            "color": car.color,
            "plate": car.plate,
            "description": car.description,
            "images": car.images,
        }
        merged.update(updates)
        try:
            validate_car_fields(merged)
        except ValidationError as exc:
            logger.warning("Car update rejected id=%s: %s", car_id, exc.detail)
            raise

        for key in _REQUIRED_TEXT_FIELDS:
            if key in updates:
                updates[key] = updates[key].strip()
        updated = self._repo.update(car_id, **updates)  # type: ignore[return-value]
        logger.info("Car updated id=%s", car_id)
        return updated

    def set_availability(self, car_id: int, available: bool) -> Car:
        """List or delist a catalog entry."""
        logger.info("Setting car id=%s available=%s", car_id, available)
        self.get_car(car_id)
        return self._repo.update(car_id, available=available)  # type: ignore[return-value]
