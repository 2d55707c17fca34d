from datetime import datetime, timezone
from decimal import Decimal

import pytest

from carmarket.core.exceptions import NotFoundError, ValidationError
from carmarket.models.car import FuelType, TransmissionType
from carmarket.schemas.car import CarSearchParams, CarUpdate
from carmarket.services.car_service import CarService

from .utils import make_car, make_offer


def test_register_car_defaults(conn):
    car = make_car(conn)
    assert car.available is True
    assert car.full_name == "Toyota Corolla 2020"
    assert car.images == ["https://img.example.com/corolla-1.jpg"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"year": 1900},
        {"year": datetime.now(tz=timezone.utc).year + 2},
        {"brand": "  "},
        {"model": ""},
        {"plate": " "},
        {"color": ""},
        {"mileage": -1},
        {"description": "x" * 1001},
        {"images": ["ftp://img.example.com/a.jpg"]},
    ],
)
def test_register_car_validation(conn, overrides):
    with pytest.raises(ValidationError):
        make_car(conn, **overrides)


def test_year_boundaries_accepted(conn):
    assert make_car(conn, year=1901).year == 1901
    next_year = datetime.now(tz=timezone.utc).year + 1
    assert make_car(conn, year=next_year, plate="ZZ999ZZ").year == next_year


def test_update_car_validates_merged_record(conn, car):
    service = CarService(conn)
    updated = service.update_car(car.id, CarUpdate(mileage=40000, images=[]))
    assert updated.mileage == 40000
    assert updated.images == []
    assert updated.brand == "Toyota"
    with pytest.raises(ValidationError):
        service.update_car(car.id, CarUpdate(year=1899))


def test_update_unknown_car(conn):
    with pytest.raises(NotFoundError):
        CarService(conn).update_car(404, CarUpdate(color="Red"))


def test_delisting_hides_car_from_available_list(conn, car):
    service = CarService(conn)
    service.set_availability(car.id, False)
    assert car.id not in {c.id for c in service.list_available_cars()}
    assert service.get_car(car.id).available is False


def test_search_is_conjunctive(conn):
    corolla = make_car(conn)
    make_car(conn, brand="Ford", model="Focus", year=2015, fuel_type=FuelType.DIESEL, plate="FF001FF")
    prius = make_car(
        conn,
        model="Prius",
        year=2018,
        fuel_type=FuelType.HYBRID,
        plate="PR001PR",
        description="Hybrid commuter",
    )
    service = CarService(conn)

    ids = lambda cars: {c.id for c in cars}  # noqa: E731
    assert ids(service.search_cars(CarSearchParams(brand="toyota"))) == {corolla.id, prius.id}
    assert ids(service.search_cars(CarSearchParams(brand="toyota", min_year=2019))) == {corolla.id}
    assert ids(service.search_cars(CarSearchParams(keyword="COMMUTER"))) == {prius.id}
    assert ids(
        service.search_cars(
            CarSearchParams(brand="Toyota", fuel_type=FuelType.HYBRID, transmission=TransmissionType.AUTOMATIC)
        )
    ) == {prius.id}
    assert service.search_cars(CarSearchParams(brand="Toyota", max_year=2010)) == []
    assert len(service.search_cars(CarSearchParams())) == 3


def test_search_keyword_wildcards_match_literally(conn):
    make_car(conn)
    discounted = make_car(conn, plate="DS050DS", description="Price cut 50% this week")
    service = CarService(conn)

    assert [c.id for c in service.search_cars(CarSearchParams(keyword="%"))] == [discounted.id]
    assert [c.id for c in service.search_cars(CarSearchParams(keyword="50%"))] == [discounted.id]
    assert service.search_cars(CarSearchParams(keyword="_")) == []


def test_search_by_price_uses_open_offers(conn, dealership):
    cheap = make_car(conn, plate="CH001CH")
    pricey = make_car(conn, plate="PX001PX")
    make_offer(conn, cheap, dealership, price="9000")
    make_offer(conn, pricey, dealership, price="45000")
    service = CarService(conn)

    found = service.search_cars(CarSearchParams(max_price=Decimal("10000")))
    assert [c.id for c in found] == [cheap.id]
    found = service.search_cars(CarSearchParams(min_price=Decimal("10000"), max_price=Decimal("50000")))
    assert [c.id for c in found] == [pricey.id]


def test_search_rejects_inverted_ranges(conn):
    with pytest.raises(ValidationError):
        CarService(conn).search_cars(CarSearchParams(min_year=2020, max_year=2010))
