from decimal import Decimal

import pytest

from carmarket.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.models.purchase import PaymentMethod, PurchaseStatus
from carmarket.schemas.purchase import PurchaseCreate
from carmarket.services.car_offer_service import CarOfferService
from carmarket.services.purchase_service import PurchaseService
from carmarket.services.user_service import UserService

from .utils import make_car, make_offer, make_purchase


def assert_offer_consistent(conn, offer_id):
    """An unavailable offer is held by a CONFIRMED or DELIVERED purchase, and vice versa."""
    offer = CarOfferService(conn).get_offer(offer_id)
    statuses = [p.status for p in PurchaseService(conn).list_by_offer(offer_id)]
    holding = [s for s in statuses if s in (PurchaseStatus.CONFIRMED, PurchaseStatus.DELIVERED)]
    active = [s for s in statuses if s in (PurchaseStatus.PENDING, PurchaseStatus.CONFIRMED)]
    assert len(active) <= 1
    if offer.available:
        assert not holding
    else:
        assert len(holding) == 1


def test_happy_path(conn, offer, buyer, dealership):
    purchases = PurchaseService(conn)
    offers = CarOfferService(conn)

    purchase = make_purchase(conn, offer, buyer)
    assert purchase.status == PurchaseStatus.PENDING
    assert purchase.final_price == Decimal("20000.00")
    assert offers.get_offer(offer.id).available is True
    assert_offer_consistent(conn, offer.id)

    confirmed = purchases.confirm_purchase(purchase.id, dealership)
    assert confirmed.status == PurchaseStatus.CONFIRMED
    assert offers.get_offer(offer.id).available is False
    assert_offer_consistent(conn, offer.id)

    delivered = purchases.deliver_purchase(purchase.id, dealership)
    assert delivered.status == PurchaseStatus.DELIVERED
    assert offers.get_offer(offer.id).available is False
    assert_offer_consistent(conn, offer.id)


def test_buyer_drives_own_purchase_to_delivery(conn, offer, buyer):
    purchases = PurchaseService(conn)
    offers = CarOfferService(conn)

    purchase = make_purchase(conn, offer, buyer, price="20000")
    assert purchase.status == PurchaseStatus.PENDING
    assert offers.get_offer(offer.id).available is True

    assert purchases.confirm_purchase(purchase.id, buyer).status == PurchaseStatus.CONFIRMED
    assert offers.get_offer(offer.id).available is False

    assert purchases.deliver_purchase(purchase.id, buyer).status == PurchaseStatus.DELIVERED
    assert offers.get_offer(offer.id).available is False
    assert_offer_consistent(conn, offer.id)


def test_second_buyer_after_confirm(conn, offer, buyer, other_buyer, dealership):
    purchase = make_purchase(conn, offer, buyer)
    PurchaseService(conn).confirm_purchase(purchase.id, dealership)
    with pytest.raises(ConflictError):
        make_purchase(conn, offer, other_buyer)
    assert len(PurchaseService(conn).list_by_offer(offer.id)) == 1


def test_second_buyer_while_pending(conn, offer, buyer, other_buyer):
    make_purchase(conn, offer, buyer)
    with pytest.raises(ConflictError):
        make_purchase(conn, offer, other_buyer)


def test_purchase_after_cancel(conn, offer, buyer, other_buyer):
    first = make_purchase(conn, offer, buyer)
    PurchaseService(conn).cancel_purchase(first.id, buyer)
    second = make_purchase(conn, offer, other_buyer)
    assert second.status == PurchaseStatus.PENDING
    assert_offer_consistent(conn, offer.id)


def test_cancel_confirmed_releases_offer(conn, offer, buyer, dealership):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    purchases.confirm_purchase(purchase.id, dealership)

    cancelled = purchases.cancel_purchase(purchase.id, buyer)
    assert cancelled.status == PurchaseStatus.CANCELLED
    assert CarOfferService(conn).get_offer(offer.id).available is True
    assert_offer_consistent(conn, offer.id)


def test_cancel_twice(conn, offer, buyer):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    purchases.cancel_purchase(purchase.id, buyer)
    with pytest.raises(InvalidStateError):
        purchases.cancel_purchase(purchase.id, buyer)
    assert CarOfferService(conn).get_offer(offer.id).available is True


def test_illegal_transitions(conn, offer, buyer, dealership):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    with pytest.raises(InvalidStateError):
        purchases.deliver_purchase(purchase.id, dealership)

    purchases.confirm_purchase(purchase.id, dealership)
    with pytest.raises(InvalidStateError):
        purchases.confirm_purchase(purchase.id, dealership)

    purchases.deliver_purchase(purchase.id, dealership)
    for action in (purchases.cancel_purchase, purchases.confirm_purchase):
        with pytest.raises(InvalidStateError):
            action(purchase.id, dealership)
    assert CarOfferService(conn).get_offer(offer.id).available is False


def test_revert_to_pending(conn, offer, buyer, dealership, admin):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    with pytest.raises(InvalidStateError):
        purchases.revert_to_pending(purchase.id, admin)

    purchases.confirm_purchase(purchase.id, dealership)
    with pytest.raises(PermissionDeniedError):
        purchases.revert_to_pending(purchase.id, dealership)

    reverted = purchases.revert_to_pending(purchase.id, admin)
    assert reverted.status == PurchaseStatus.PENDING
    assert CarOfferService(conn).get_offer(offer.id).available is True
    assert_offer_consistent(conn, offer.id)

    assert purchases.confirm_purchase(purchase.id, dealership).status == PurchaseStatus.CONFIRMED


def test_purchase_validation(conn, offer, buyer):
    for price in ("0", "12.345", "100000000"):
        with pytest.raises(ValidationError):
            make_purchase(conn, offer, buyer, price=price)
    with pytest.raises(ValidationError):
        PurchaseService(conn).create_purchase(
            PurchaseCreate(
                car_offer_id=offer.id,
                final_price=Decimal("100"),
                payment_method=PaymentMethod.CREDIT_CARD,
                observations="x" * 1001,
            ),
            created_by=buyer,
        )
    assert PurchaseService(conn).list_by_offer(offer.id) == []


def test_purchase_unknown_offer(conn, buyer):
    with pytest.raises(NotFoundError):
        PurchaseService(conn).create_purchase(
            PurchaseCreate(car_offer_id=999, final_price=Decimal("1"), payment_method=PaymentMethod.CASH),
            created_by=buyer,
        )


def test_purchase_role_rules(conn, offer, buyer, other_buyer, dealership, admin):
    service = PurchaseService(conn)
    with pytest.raises(PermissionDeniedError):
        make_purchase(conn, offer, dealership)
    with pytest.raises(PermissionDeniedError):
        service.create_purchase(
            PurchaseCreate(
                car_offer_id=offer.id,
                buyer_id=other_buyer.id,
                final_price=Decimal("100"),
                payment_method=PaymentMethod.CASH,
            ),
            created_by=buyer,
        )
    with pytest.raises(ValidationError):
        make_purchase(conn, offer, admin)

    on_behalf = service.create_purchase(
        PurchaseCreate(
            car_offer_id=offer.id,
            buyer_id=buyer.id,
            final_price=Decimal("19000"),
            payment_method=PaymentMethod.CHECK,
        ),
        created_by=admin,
    )
    assert on_behalf.buyer_id == buyer.id


def test_inactive_buyer_cannot_purchase(conn, offer, buyer, admin):
    UserService(conn).set_active(buyer.id, False, updated_by=admin)
    with pytest.raises(NotFoundError):
        make_purchase(conn, offer, buyer)


def test_transition_permissions(conn, offer, buyer, other_buyer, other_dealership):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    with pytest.raises(PermissionDeniedError):
        purchases.confirm_purchase(purchase.id, other_buyer)
    with pytest.raises(PermissionDeniedError):
        purchases.deliver_purchase(purchase.id, other_dealership)
    with pytest.raises(PermissionDeniedError):
        purchases.confirm_purchase(purchase.id, other_dealership)
    with pytest.raises(PermissionDeniedError):
        purchases.cancel_purchase(purchase.id, other_buyer)
    assert purchases.get_purchase(purchase.id).status == PurchaseStatus.PENDING


def test_dealership_can_cancel(conn, offer, buyer, dealership):
    purchase = make_purchase(conn, offer, buyer)
    assert PurchaseService(conn).cancel_purchase(purchase.id, dealership).status == PurchaseStatus.CANCELLED


def test_unknown_purchase(conn, dealership):
    with pytest.raises(NotFoundError):
        PurchaseService(conn).confirm_purchase(404, dealership)


def test_purchase_visibility(conn, offer, buyer, other_buyer, other_dealership, dealership, admin):
    purchases = PurchaseService(conn)
    purchase = make_purchase(conn, offer, buyer)
    for viewer in (buyer, dealership, admin):
        assert purchases.get_visible_purchase(purchase.id, viewer).id == purchase.id
    for outsider in (other_buyer, other_dealership):
        with pytest.raises(PermissionDeniedError):
            purchases.get_visible_purchase(purchase.id, outsider)


def test_summary(conn, offer, buyer):
    purchase = make_purchase(conn, offer, buyer, payment_method=PaymentMethod.CREDIT_CARD)
    summary = PurchaseService(conn).summary(purchase.id)
    assert summary["purchase_id"] == purchase.id
    assert summary["car"] == "Toyota Corolla 2020"
    assert summary["buyer"] == "Ana Buyer"
    assert summary["dealership"] == "Autos Sur"
    assert summary["status"] == PurchaseStatus.PENDING
    assert summary["payment_method"] == PaymentMethod.CREDIT_CARD


def test_purchase_listings(conn, offer, car, buyer, other_buyer, dealership, other_dealership):
    purchases = PurchaseService(conn)
    first = make_purchase(conn, offer, buyer)
    purchases.cancel_purchase(first.id, buyer)
    second = make_purchase(conn, offer, other_buyer)

    other_car = make_car(conn, plate="ZZ999ZZ")
    other_offer = make_offer(conn, other_car, other_dealership, price="9000")
    third = make_purchase(conn, other_offer, buyer, price="9000")

    assert {p.id for p in purchases.list_by_buyer(buyer.id)} == {first.id, third.id}
    assert {p.id for p in purchases.list_by_dealership(dealership.id)} == {first.id, second.id}
    assert {p.id for p in purchases.list_by_offer(offer.id)} == {first.id, second.id}
    assert {p.id for p in purchases.list_by_car(car.id)} == {first.id, second.id}
    assert len(purchases.list_purchases()) == 3
