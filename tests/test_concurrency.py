"""Races between independent connections on the same rows."""
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from carmarket.core.exceptions import AppError, ConflictError
from carmarket.db.database import get_db
from carmarket.models.purchase import PaymentMethod, PurchaseStatus
from carmarket.schemas.car_offer import CarOfferCreate
from carmarket.schemas.purchase import PurchaseCreate
from carmarket.services.car_offer_service import CarOfferService
from carmarket.services.purchase_service import PurchaseService

from .utils import make_purchase


def _race(*calls):
    """Run each call on its own thread and connection, released together."""
    barrier = threading.Barrier(len(calls))

    def run(call):
        barrier.wait()
        try:
            with get_db() as conn:
                return call(conn)
        except AppError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(run, calls))


def test_two_buyers_one_offer(conn, offer, buyer, other_buyer):
    def purchase_as(user):
        def call(c):
            return PurchaseService(c).create_purchase(
                PurchaseCreate(
                    car_offer_id=offer.id,
                    final_price=Decimal("20000"),
                    payment_method=PaymentMethod.CASH,
                ),
                created_by=user,
            )
        return call

    results = _race(purchase_as(buyer), purchase_as(other_buyer))

    errors = [r for r in results if isinstance(r, AppError)]
    created = [r for r in results if not isinstance(r, AppError)]
    assert len(created) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)

    conn.rollback()
    history = PurchaseService(conn).list_by_offer(offer.id)
    assert [p.id for p in history] == [created[0].id]
    assert history[0].status == PurchaseStatus.PENDING


def test_confirm_and_cancel_race(conn, offer, buyer, dealership):
    purchase = make_purchase(conn, offer, buyer)
    conn.commit()

    results = _race(
        lambda c: PurchaseService(c).confirm_purchase(purchase.id, dealership),
        lambda c: PurchaseService(c).cancel_purchase(purchase.id, buyer),
    )

    # cancel always succeeds: from PENDING, or from CONFIRMED if confirm went first
    cancelled = results[1]
    assert not isinstance(cancelled, AppError)
    assert cancelled.status == PurchaseStatus.CANCELLED

    conn.rollback()
    final = PurchaseService(conn).get_purchase(purchase.id)
    assert final.status == PurchaseStatus.CANCELLED
    assert CarOfferService(conn).get_offer(offer.id).available is True


def test_two_offers_for_one_car_and_dealership(conn, car, dealership):
    def list_car(c):
        return CarOfferService(c).create_offer(
            CarOfferCreate(car_id=car.id, price=Decimal("20000")), created_by=dealership
        )

    results = _race(list_car, list_car)

    created = [r for r in results if not isinstance(r, AppError)]
    errors = [r for r in results if isinstance(r, AppError)]
    assert len(created) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], ConflictError)

    conn.rollback()
    open_ids = [o.id for o in CarOfferService(conn).list_by_car(car.id) if o.available]
    assert open_ids == [created[0].id]
