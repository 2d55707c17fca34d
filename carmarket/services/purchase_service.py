"""
Purchase ledger service: the purchase state machine and its side effects on
offer availability.

State table (see ``carmarket.models.purchase``):
    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> DELIVERED | CANCELLED
    DELIVERED, CANCELLED are terminal.
    CONFIRMED -> PENDING is an administrative revert.

Business rules:
  - Creating a purchase leaves the offer available; only one non-terminal
    purchase may exist per offer at a time.
  - Confirming marks the offer sold; cancelling marks it available again;
    delivering leaves it sold; reverting to pending releases it.
  - Each operation takes the write lock before reading, so the purchase
    status write and the offer availability write land in one transaction
    against the latest committed state.
  - Role checks: buyers purchase for themselves; the purchase's buyer, the
    selling dealership or an admin may confirm, deliver or cancel; only
    admins revert.
"""
import sqlite3
from typing import Optional
import logging

from carmarket.core.config import settings
from carmarket.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.db.database import begin_write
from carmarket.models.car_offer import CarOffer
from carmarket.models.purchase import Purchase, PurchaseStatus, can_transition
from carmarket.models.user import User, UserRole
from carmarket.repositories.car_offer_repository import CarOfferRepository
from carmarket.repositories.car_repository import CarRepository
from carmarket.repositories.purchase_repository import PurchaseRepository
from carmarket.repositories.user_repository import UserRepository
from carmarket.schemas.purchase import PurchaseCreate
from carmarket.services.car_offer_service import (
    CarOfferService,
    validate_notes,
    validate_price,
)
from carmarket.services.user_service import UserService

logger = logging.getLogger(__name__)


class PurchaseService:
    """Business logic for purchases."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        logger.trace("Initializing PurchaseService")
        self._conn = conn
        self._repo = PurchaseRepository(conn)
        self._offer_repo = CarOfferRepository(conn)
        self._car_repo = CarRepository(conn)
        self._user_repo = UserRepository(conn)
        self._offers = CarOfferService(conn)
        self._users = UserService(conn)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_purchase(self, purchase_id: int) -> Purchase:
        """Return a purchase or raise NotFoundError."""
        logger.info("Fetching purchase id=%s", purchase_id)
        purchase = self._repo.get_by_id(purchase_id)
        if not purchase:
            logger.warning("Purchase id=%s not found", purchase_id)
            raise NotFoundError(f"Purchase with id={purchase_id} not found")
        return purchase

    def get_visible_purchase(self, purchase_id: int, viewer: User) -> Purchase:
        """Return a purchase the viewer is a party to (admins see all)."""
        purchase = self.get_purchase(purchase_id)
        offer = self._offers.get_offer(purchase.car_offer_id)
        if viewer.role != UserRole.ADMIN and viewer.id not in (
            purchase.buyer_id,
            offer.dealership_id,
        ):
            logger.warning("User id=%s is not a party to purchase id=%s", viewer.id, purchase_id)
            raise PermissionDeniedError("You are not a party to this purchase")
        return purchase

    def list_purchases(self) -> list[Purchase]:
        logger.info("Listing purchases")
        return self._repo.list_all()

    def list_by_buyer(self, buyer_id: int) -> list[Purchase]:
        logger.info("Listing purchases buyer_id=%s", buyer_id)
        return self._repo.list_by_buyer(buyer_id)

    def list_by_dealership(self, dealership_id: int) -> list[Purchase]:
        logger.info("Listing purchases dealership_id=%s", dealership_id)
        return self._repo.list_by_dealership(dealership_id)

    def list_by_offer(self, offer_id: int) -> list[Purchase]:
        logger.info("Listing purchases car_offer_id=%s", offer_id)
        self._offers.get_offer(offer_id)
        return self._repo.list_by_offer(offer_id)

    def list_by_car(self, car_id: int) -> list[Purchase]:
        logger.info("Listing purchases car_id=%s", car_id)
        return self._repo.list_by_car(car_id)

    def summary(self, purchase_id: int) -> dict:
        """Human-readable detail view built by following the purchase's references."""
        logger.info("Building purchase summary id=%s", purchase_id)
        purchase = self.get_purchase(purchase_id)
        offer = self._offers.get_offer(purchase.car_offer_id)
        car = self._car_repo.get_by_id(offer.car_id)
        buyer = self._user_repo.get_by_id(purchase.buyer_id)
        dealership = self._user_repo.get_by_id(offer.dealership_id)
        return {
            "purchase_id": purchase.id,
            "car": car.full_name if car else "Unknown car",
            "buyer": buyer.full_name if buyer else "Unknown buyer",
            "dealership": dealership.display_name if dealership else "Unknown dealership",
            "final_price": purchase.final_price,
            "purchase_date": purchase.purchase_date,
            "status": purchase.status,
            "payment_method": purchase.payment_method,
            "observations": purchase.observations,
        }

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_purchase(self, data: PurchaseCreate, created_by: User) -> Purchase:
        """
        Open a PENDING purchase against an available offer.

        The offer row is claimed with a version-checked write; a lost race is
        re-read and retried up to ``OFFER_LOCK_MAX_RETRIES`` times.
        """
        buyer_id = data.buyer_id
        if created_by.role == UserRole.BUYER:
            if buyer_id is not None and buyer_id != created_by.id:
                logger.warning(
                    "Buyer id=%s attempted to purchase for buyer id=%s", created_by.id, buyer_id
                )
                raise PermissionDeniedError("Buyers can only purchase for themselves")
            buyer_id = created_by.id
        elif created_by.role != UserRole.ADMIN:
            logger.warning("User id=%s attempted to create a purchase", created_by.id)
            raise PermissionDeniedError("Only buyers can create purchases")
        if buyer_id is None:
            raise ValidationError("buyer_id is required")

        logger.info("Creating purchase buyer_id=%s car_offer_id=%s", buyer_id, data.car_offer_id)
        try:
            validate_price(data.final_price, label="Final price")
            validate_notes(data.observations, label="Observations")
        except ValidationError as exc:
            logger.warning("Purchase rejected: %s", exc.detail)
            raise

        begin_write(self._conn)
        self._users.get_buyer(buyer_id)

        for attempt in range(1, settings.OFFER_LOCK_MAX_RETRIES + 1):
            offer = self._offers.get_offer(data.car_offer_id)
            self._ensure_purchasable(offer)
            if self._offer_repo.claim(offer.id, offer.version):
                purchase = self._repo.create(
                    buyer_id=buyer_id,
                    car_offer_id=offer.id,
                    final_price=data.final_price,
                    payment_method=data.payment_method,
                    observations=data.observations,
                )
                logger.info("Purchase created id=%s", purchase.id)
                return purchase
            logger.warning(
                "Version conflict claiming car offer id=%s (attempt %s/%s)",
                offer.id, attempt, settings.OFFER_LOCK_MAX_RETRIES,
            )

        raise ConflictError(
            f"Car offer id={data.car_offer_id} was modified concurrently; please retry"
        )

    def _ensure_purchasable(self, offer: CarOffer) -> None:
        if not offer.available:
            logger.warning("Car offer id=%s is not available", offer.id)
            raise ConflictError(f"Car offer id={offer.id} is no longer available")
        if self._repo.has_active_for_offer(offer.id):
            logger.warning("Car offer id=%s already has an active purchase", offer.id)
            raise ConflictError(f"Car offer id={offer.id} already has a purchase in progress")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def confirm_purchase(self, purchase_id: int, actor: User) -> Purchase:
        """PENDING -> CONFIRMED; the offer is marked sold."""
        begin_write(self._conn)
        purchase, offer = self._load(purchase_id)
        self._ensure_party(purchase, offer, actor, "confirm")
        self._check_transition(purchase, PurchaseStatus.CONFIRMED)
        if not offer.available:
            logger.warning("Car offer id=%s already sold; confirm refused", offer.id)
            raise ConflictError(f"Car offer id={offer.id} is no longer available")
        self._transition(purchase, PurchaseStatus.CONFIRMED)
        self._offers.mark_as_sold(offer.id)
        return self.get_purchase(purchase_id)

    def deliver_purchase(self, purchase_id: int, actor: User) -> Purchase:
        """CONFIRMED -> DELIVERED; the offer stays sold."""
        begin_write(self._conn)
        purchase, offer = self._load(purchase_id)
        self._ensure_party(purchase, offer, actor, "deliver")
        self._transition(purchase, PurchaseStatus.DELIVERED)
        return self.get_purchase(purchase_id)

    def cancel_purchase(self, purchase_id: int, actor: User) -> Purchase:
        """PENDING|CONFIRMED -> CANCELLED; the offer is marked available."""
        begin_write(self._conn)
        purchase, offer = self._load(purchase_id)
        self._ensure_party(purchase, offer, actor, "cancel")
        self._transition(purchase, PurchaseStatus.CANCELLED)
        self._offers.mark_as_available(offer.id)
        return self.get_purchase(purchase_id)

    def revert_to_pending(self, purchase_id: int, actor: User) -> Purchase:
        """
        Administrative CONFIRMED -> PENDING correction.

        This deliberately does not leave availability as it was: the offer is
        released, because a pending purchase does not hold it and an
        unavailable offer must always be held by a CONFIRMED or DELIVERED
        purchase.
        """
        if actor.role != UserRole.ADMIN:
            logger.warning("Non-admin id=%s attempted to revert purchase id=%s", actor.id, purchase_id)
            raise PermissionDeniedError("Only administrators can revert a purchase to pending")
        begin_write(self._conn)
        purchase, offer = self._load(purchase_id)
        self._transition(purchase, PurchaseStatus.PENDING)
        self._offers.mark_as_available(offer.id)
        return self.get_purchase(purchase_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self, purchase_id: int) -> tuple[Purchase, CarOffer]:
        purchase = self.get_purchase(purchase_id)
        return purchase, self._offers.get_offer(purchase.car_offer_id)

    def _ensure_party(self, purchase: Purchase, offer: CarOffer, actor: User, action: str) -> None:
        """The purchase's buyer, the selling dealership, or an admin."""
        if actor.role == UserRole.ADMIN or actor.id in (purchase.buyer_id, offer.dealership_id):
            return
        logger.warning("User id=%s cannot %s purchase id=%s", actor.id, action, purchase.id)
        raise PermissionDeniedError(
            f"Only the buyer or the selling dealership can {action} this purchase"
        )

    def _check_transition(self, purchase: Purchase, target: PurchaseStatus) -> None:
        if not can_transition(purchase.status, target):
            logger.warning(
                "Illegal purchase transition id=%s %s -> %s",
                purchase.id, purchase.status.value, target.value,
            )
            raise InvalidStateError(
                f"Cannot move purchase id={purchase.id} from "
                f"{purchase.status.value} to {target.value}"
            )

    def _transition(self, purchase: Purchase, target: PurchaseStatus) -> None:
        logger.info(
            "Purchase id=%s transition %s -> %s",
            purchase.id, purchase.status.value, target.value,
        )
        self._check_transition(purchase, target)
        if not self._repo.transition(purchase.id, purchase.status, target):
            current: Optional[Purchase] = self._repo.get_by_id(purchase.id)
            logger.warning(
                "Purchase id=%s changed concurrently (now %s)",
                purchase.id, current.status.value if current else "missing",
            )
            raise ConflictError(f"Purchase id={purchase.id} was modified concurrently; please retry")
