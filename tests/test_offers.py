from decimal import Decimal

import pytest

from carmarket.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.schemas.car_offer import CarOfferCreate, CarOfferUpdate
from carmarket.services.car_offer_service import CarOfferService
from carmarket.services.car_service import CarService
from carmarket.services.purchase_service import PurchaseService
from carmarket.services.user_service import UserService

from .utils import make_car, make_offer, make_purchase


def test_create_offer_is_available(offer, car, dealership):
    assert offer.available is True
    assert offer.car_id == car.id
    assert offer.dealership_id == dealership.id
    assert offer.price == Decimal("20000.00")
    assert offer.version == 0


@pytest.mark.parametrize("price", ["0", "-5", "100000000.00", "10.005"])
def test_create_offer_rejects_bad_price(conn, car, dealership, price):
    with pytest.raises(ValidationError):
        make_offer(conn, car, dealership, price=price)


def test_create_offer_rejects_long_notes(conn, car, dealership):
    with pytest.raises(ValidationError):
        CarOfferService(conn).create_offer(
            CarOfferCreate(car_id=car.id, price=Decimal("100"), dealership_notes="n" * 1001),
            created_by=dealership,
        )


def test_create_offer_unknown_car(conn, dealership):
    with pytest.raises(NotFoundError):
        CarOfferService(conn).create_offer(
            CarOfferCreate(car_id=999, price=Decimal("100")), created_by=dealership
        )


def test_admin_offer_for_unknown_or_inactive_dealership(conn, admin, car, dealership):
    service = CarOfferService(conn)
    with pytest.raises(NotFoundError):
        service.create_offer(
            CarOfferCreate(car_id=car.id, dealership_id=999, price=Decimal("100")), created_by=admin
        )
    UserService(conn).set_active(dealership.id, False, updated_by=admin)
    with pytest.raises(NotFoundError):
        service.create_offer(
            CarOfferCreate(car_id=car.id, dealership_id=dealership.id, price=Decimal("100")),
            created_by=admin,
        )


def test_dealership_cannot_list_for_another(conn, car, dealership, other_dealership):
    with pytest.raises(PermissionDeniedError):
        CarOfferService(conn).create_offer(
            CarOfferCreate(car_id=car.id, dealership_id=other_dealership.id, price=Decimal("100")),
            created_by=dealership,
        )


def test_buyer_cannot_create_offer(conn, car, buyer):
    with pytest.raises(PermissionDeniedError):
        make_offer(conn, car, buyer)


def test_one_open_offer_per_car_and_dealership(conn, offer, car, dealership, other_dealership):
    with pytest.raises(ConflictError):
        make_offer(conn, car, dealership, price="19000")
    # another dealership may list the same catalog car
    assert make_offer(conn, car, other_dealership, price="19500").available


def test_relisting_after_close(conn, offer, car, dealership):
    service = CarOfferService(conn)
    service.close_offer(offer.id, closed_by=dealership)
    relisted = make_offer(conn, car, dealership, price="18000")
    assert relisted.id != offer.id
    # the closed one cannot come back while the new one is open
    with pytest.raises(ConflictError):
        service.reopen_offer(offer.id, reopened_by=dealership)


def test_offer_on_delisted_car(conn, car, dealership):
    CarService(conn).set_availability(car.id, False)
    with pytest.raises(ConflictError):
        make_offer(conn, car, dealership)


def test_update_offer_partial(conn, offer, dealership):
    service = CarOfferService(conn)
    updated = service.update_offer(
        offer.id, CarOfferUpdate(dealership_notes="Ready to drive"), updated_by=dealership
    )
    assert updated.price == Decimal("20000.00")
    assert updated.dealership_notes == "Ready to drive"

    updated = service.update_offer(offer.id, CarOfferUpdate(price=Decimal("19999.99")), updated_by=dealership)
    assert updated.price == Decimal("19999.99")
    assert updated.available is True

    with pytest.raises(ValidationError):
        service.update_offer(offer.id, CarOfferUpdate(price=Decimal("0")), updated_by=dealership)


def test_update_offer_requires_owner(conn, offer, other_dealership, admin):
    service = CarOfferService(conn)
    with pytest.raises(PermissionDeniedError):
        service.update_offer(offer.id, CarOfferUpdate(price=Decimal("1")), updated_by=other_dealership)
    assert service.update_offer(
        offer.id, CarOfferUpdate(price=Decimal("15000")), updated_by=admin
    ).price == Decimal("15000.00")


def test_update_unknown_offer(conn, dealership):
    with pytest.raises(NotFoundError):
        CarOfferService(conn).update_offer(404, CarOfferUpdate(price=Decimal("1")), updated_by=dealership)


def test_close_and_reopen_bump_version(conn, offer, dealership):
    service = CarOfferService(conn)
    closed = service.close_offer(offer.id, closed_by=dealership)
    assert closed.available is False
    assert closed.version == offer.version + 1
    reopened = service.reopen_offer(offer.id, reopened_by=dealership)
    assert reopened.available is True
    assert reopened.version == offer.version + 2


def test_close_refused_once_purchased(conn, offer, dealership, buyer):
    make_purchase(conn, offer, buyer)
    with pytest.raises(ConflictError):
        CarOfferService(conn).close_offer(offer.id, closed_by=dealership)


def test_offer_queries(conn, offer, car, dealership, other_dealership):
    service = CarOfferService(conn)
    second_car = make_car(conn, plate="QQ111QQ")
    second = make_offer(conn, second_car, dealership, price="30000")
    service.close_offer(second.id, closed_by=dealership)

    assert {o.id for o in service.list_by_dealership(dealership.id)} == {offer.id, second.id}
    assert [o.id for o in service.list_by_dealership(dealership.id, available_only=True)] == [offer.id]
    assert [o.id for o in service.list_available()] == [offer.id]
    assert service.find_by_car_and_dealership(car.id, dealership.id).id == offer.id
    with pytest.raises(NotFoundError):
        service.find_by_car_and_dealership(car.id, other_dealership.id)
    assert [o.id for o in service.list_by_car(car.id)] == [offer.id]


def test_reopen_refused_while_sibling_is_held(conn, offer, car, dealership, buyer):
    offers = CarOfferService(conn)
    offers.close_offer(offer.id, closed_by=dealership)
    sibling = make_offer(conn, car, dealership, price="21000")
    purchase = make_purchase(conn, sibling, buyer, price="21000")
    PurchaseService(conn).confirm_purchase(purchase.id, dealership)

    # the sibling is sold but a cancellation would put it back on sale
    with pytest.raises(ConflictError):
        offers.reopen_offer(offer.id, reopened_by=dealership)

    PurchaseService(conn).cancel_purchase(purchase.id, buyer)
    open_ids = [o.id for o in offers.list_by_car(car.id) if o.available]
    assert open_ids == [sibling.id]
