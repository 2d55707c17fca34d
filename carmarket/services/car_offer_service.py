"""
Offer book service.

Business rules:
  - An offer references one catalog car and one active dealership.
  - Price must be positive, at most 99,999,999.99, with two decimal places.
  - A dealership keeps at most one open offer per car; it may re-list once
    the previous offer is closed.
  - Availability is a side effect of purchase transitions. Dealerships may
    close or reopen an offer directly only while no purchase references it.
  - Every availability change is a version-checked write, retried a bounded
    number of times before surfacing a ConflictError.
"""
import sqlite3
from decimal import Decimal
from typing import Optional
import logging

from carmarket.core.config import settings
from carmarket.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.db.database import begin_write
from carmarket.models.car_offer import CarOffer
from carmarket.models.user import User, UserRole
from carmarket.repositories.car_offer_repository import CarOfferRepository
from carmarket.repositories.car_repository import CarRepository
from carmarket.repositories.purchase_repository import PurchaseRepository
from carmarket.schemas.car_offer import CarOfferCreate, CarOfferUpdate
from carmarket.services.user_service import UserService

logger = logging.getLogger(__name__)

MAX_PRICE = Decimal("99999999.99")
NOTES_MAX_LENGTH = 1000


def validate_price(price: Decimal, label: str = "Price") -> None:
    """Positive, at most two decimal places, within the storable maximum."""
    if price <= 0:
        raise ValidationError(f"{label} must be greater than zero")
    if price > MAX_PRICE:
        raise ValidationError(f"{label} cannot exceed 99,999,999.99")
    if price.as_tuple().exponent < -2:
        raise ValidationError(f"{label} cannot have more than two decimal places")


def validate_notes(notes: Optional[str], label: str = "Dealership notes") -> None:
    if notes is not None and len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(f"{label} cannot exceed {NOTES_MAX_LENGTH} characters")


class CarOfferService:
    """Business logic for dealership offers."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing CarOfferService")
        self._conn = conn
        self._repo = CarOfferRepository(conn)
        self._car_repo = CarRepository(conn)
        self._purchase_repo = PurchaseRepository(conn)
        self._users = UserService(conn)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_offer(self, offer_id: int) -> CarOffer:
        """Return an offer or raise NotFoundError."""
        logger.info("Fetching car offer id=%s", offer_id)
        offer = self._repo.get_by_id(offer_id)
        if not offer:
            logger.warning("Car offer id=%s not found", offer_id)
            raise NotFoundError(f"Car offer with id={offer_id} not found")
        return offer

    def list_available(self) -> list[CarOffer]:
        logger.info("Listing available car offers")
        return self._repo.list_available()

    def list_by_dealership(self, dealership_id: int, available_only: bool = False) -> list[CarOffer]:
        logger.info("Listing car offers dealership_id=%s", dealership_id)
        self._users.get_user(dealership_id)
        return self._repo.list_by_dealership(dealership_id, available_only=available_only)

    def list_by_car(self, car_id: int) -> list[CarOffer]:
        logger.info("Listing car offers car_id=%s", car_id)
        return self._repo.list_by_car(car_id)

    def find_by_car_and_dealership(self, car_id: int, dealership_id: int) -> CarOffer:
        logger.info("Looking up car offer car_id=%s dealership_id=%s", car_id, dealership_id)
        offer = self._repo.get_by_car_and_dealership(car_id, dealership_id)
        if not offer:
            logger.warning(
                "No car offer for car_id=%s dealership_id=%s", car_id, dealership_id
            )
            raise NotFoundError(
                f"No offer for car id={car_id} from dealership id={dealership_id}"
            )
        return offer

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_offer(self, data: CarOfferCreate, created_by: User) -> CarOffer:
        """
        List a catalog car for sale.

        Dealerships always list for themselves; admins must name the dealership.
        """
        dealership_id = data.dealership_id
        if created_by.role == UserRole.DEALERSHIP:
            if dealership_id is not None and dealership_id != created_by.id:
                logger.warning(
                    "Dealership id=%s attempted to list for dealership id=%s",
                    created_by.id, dealership_id,
                )
                raise PermissionDeniedError("Dealerships can only create their own offers")
            dealership_id = created_by.id
        elif created_by.role != UserRole.ADMIN:
            logger.warning("User id=%s attempted to create an offer", created_by.id)
            raise PermissionDeniedError("Only dealerships can create offers")
        if dealership_id is None:
            raise ValidationError("dealership_id is required")

        logger.info("Creating car offer car_id=%s dealership_id=%s", data.car_id, dealership_id)
        try:
            validate_price(data.price)
            validate_notes(data.dealership_notes)
        except ValidationError as exc:
            logger.warning("Car offer rejected: %s", exc.detail)
            raise

        begin_write(self._conn)
        car = self._car_repo.get_by_id(data.car_id)
        if not car:
            logger.warning("Car id=%s not found for offer", data.car_id)
            raise NotFoundError(f"Car with id={data.car_id} not found")
        self._users.get_dealership(dealership_id)

        if not car.available:
            logger.warning("Car id=%s is delisted; offer refused", car.id)
            raise ConflictError(f"Car with id={car.id} is not available in the catalog")
        existing = self._find_live_offer(car.id, dealership_id)
        if existing:
            logger.warning(
                "Duplicate open offer for car id=%s dealership id=%s", car.id, dealership_id
            )
            raise ConflictError(
                f"Car with id={car.id} is already offered by dealership "
                f"id={dealership_id} (offer id={existing.id})"
            )

        offer = self._repo.create(
            car_id=car.id,
            dealership_id=dealership_id,
            price=data.price,
            dealership_notes=data.dealership_notes,
        )
        logger.info("Car offer created id=%s", offer.id)
        return offer

    def _find_live_offer(
        self, car_id: int, dealership_id: int, exclude_offer_id: Optional[int] = None
    ) -> Optional[CarOffer]:
        """An open offer, or a sold one a cancellation could still reopen."""
        for offer in self._repo.list_by_car(car_id):
            if offer.dealership_id != dealership_id or offer.id == exclude_offer_id:
                continue
            if offer.available or self._purchase_repo.has_active_for_offer(offer.id):
                return offer
        return None

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def _ensure_owner(self, offer: CarOffer, actor: User) -> None:
        if actor.role == UserRole.ADMIN:
            return
        if actor.role != UserRole.DEALERSHIP or actor.id != offer.dealership_id:
            logger.warning("User id=%s does not own car offer id=%s", actor.id, offer.id)
            raise PermissionDeniedError("Only the owning dealership can modify this offer")

    def update_offer(self, offer_id: int, data: CarOfferUpdate, updated_by: User) -> CarOffer:
        """Partial update of price and/or notes."""
        logger.info("Updating car offer id=%s", offer_id)
        offer = self.get_offer(offer_id)
        self._ensure_owner(offer, updated_by)

        updates = data.model_dump(exclude_unset=True)
        if updates.get("price") is None:
            updates.pop("price", None)
        try:
            if "price" in updates:
                validate_price(updates["price"])
            validate_notes(updates.get("dealership_notes"))
        except ValidationError as exc:
            logger.warning("Car offer update rejected id=%s: %s", offer_id, exc.detail)
            raise

        updated = self._repo.update(offer_id, **updates)  # type: ignore[return-value]
        logger.info("Car offer updated id=%s", offer_id)
        return updated

    def close_offer(self, offer_id: int, closed_by: User) -> CarOffer:
        """Dealership-initiated delisting of an offer nobody has purchased."""
        logger.info("Closing car offer id=%s", offer_id)
        begin_write(self._conn)
        offer = self.get_offer(offer_id)
        self._ensure_owner(offer, closed_by)
        self._ensure_unreferenced(offer)
        if not offer.available:
            return offer
        return self._set_available(offer_id, False)

    def reopen_offer(self, offer_id: int, reopened_by: User) -> CarOffer:
        """Relist a previously closed offer nobody has purchased."""
        logger.info("Reopening car offer id=%s", offer_id)
        begin_write(self._conn)
        offer = self.get_offer(offer_id)
        self._ensure_owner(offer, reopened_by)
        self._ensure_unreferenced(offer)
        if offer.available:
            return offer
        other = self._find_live_offer(offer.car_id, offer.dealership_id, exclude_offer_id=offer.id)
        if other:
            logger.warning("Reopen of offer id=%s would duplicate live offer id=%s", offer_id, other.id)
            raise ConflictError(
                f"Dealership already has a live offer (id={other.id}) for this car"
            )
        return self._set_available(offer_id, True)

    def _ensure_unreferenced(self, offer: CarOffer) -> None:
        if self._purchase_repo.list_by_offer(offer.id):
            logger.warning("Car offer id=%s is referenced by purchases", offer.id)
            raise ConflictError(
                "Offer availability is managed by its purchases and cannot be changed directly"
            )

    # ------------------------------------------------------------------
    # Availability side effects (used by the purchase ledger)
    # ------------------------------------------------------------------

    def mark_as_sold(self, offer_id: int) -> CarOffer:
        return self._set_available(offer_id, False)

    def mark_as_available(self, offer_id: int) -> CarOffer:
        return self._set_available(offer_id, True)

    def _set_available(self, offer_id: int, available: bool) -> CarOffer:
        """Version-checked availability write with bounded re-read and retry."""
        for attempt in range(1, settings.OFFER_LOCK_MAX_RETRIES + 1):
            offer = self.get_offer(offer_id)
            if self._repo.set_available(offer_id, available, offer.version):
                logger.info("Car offer id=%s available=%s", offer_id, available)
                return self.get_offer(offer_id)
            logger.warning(
                "Version conflict on car offer id=%s (attempt %s/%s)",
                offer_id, attempt, settings.OFFER_LOCK_MAX_RETRIES,
            )
        raise ConflictError(
            f"Car offer id={offer_id} was modified concurrently; please retry"
        )
