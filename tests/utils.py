from decimal import Decimal

from carmarket.models.car import FuelType, TransmissionType
from carmarket.models.purchase import PaymentMethod
from carmarket.schemas.car import CarCreate
from carmarket.schemas.car_offer import CarOfferCreate
from carmarket.schemas.purchase import PurchaseCreate
from carmarket.schemas.user import BuyerCreate, DealershipCreate
from carmarket.services.car_offer_service import CarOfferService
from carmarket.services.car_service import CarService
from carmarket.services.purchase_service import PurchaseService
from carmarket.services.user_service import UserService

PASSWORD = "Secret123"


def make_admin(conn, email="root@example.com"):
    return UserService(conn).register_admin(
        email=email, password=PASSWORD, first_name="Root", last_name="Admin"
    )


def make_buyer(conn, email="buyer@example.com", national_id="1234567", first_name="Ana", **overrides):
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": first_name,
        "last_name": "Buyer",
        "phone": "555-0100",
        "national_id": national_id,
        "address": "Calle Falsa 123",
    }
    data.update(overrides)
    return UserService(conn).register_buyer(BuyerCreate(**data))


def make_dealership(
    conn,
    email="dealer@example.com",
    tax_id="30-12345678-9",
    business_name="Autos Sur",
    **overrides,
):
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": "Dana",
        "last_name": "Dealer",
        "business_name": business_name,
        "tax_id": tax_id,
        "address": "Av. Siempre Viva 742",
        "city": "Quilmes",
        "province": "Buenos Aires",
    }
    data.update(overrides)
    return UserService(conn).register_dealership(DealershipCreate(**data))


def make_car(conn, **overrides):
    data = {
        "brand": "Toyota",
        "model": "Corolla",
        "year": 2020,
        "mileage": 35000,
        "color": "White",
        "fuel_type": FuelType.GASOLINE,
        "transmission": TransmissionType.AUTOMATIC,
        "plate": "AB123CD",
        "description": "One owner, full service history",
        "images": ["https://img.example.com/corolla-1.jpg"],
    }
    data.update(overrides)
    return CarService(conn).register_car(CarCreate(**data))


def make_offer(conn, car, dealership, price="20000"):
    return CarOfferService(conn).create_offer(
        CarOfferCreate(car_id=car.id, price=Decimal(price)), created_by=dealership
    )


def make_purchase(conn, offer, buyer, price="20000", payment_method=PaymentMethod.CASH):
    return PurchaseService(conn).create_purchase(
        PurchaseCreate(
            car_offer_id=offer.id,
            final_price=Decimal(price),
            payment_method=payment_method,
        ),
        created_by=buyer,
    )
