import pytest

from carmarket.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carmarket.core.security import verify_password
from carmarket.models.user import UserRole
from carmarket.schemas.user import UserUpdate
from carmarket.services.user_service import UserService

from .utils import PASSWORD, make_buyer, make_dealership


def test_register_buyer_hashes_password_and_keeps_profile(conn):
    buyer = make_buyer(conn)
    assert buyer.role == UserRole.BUYER
    assert buyer.is_active
    assert buyer.buyer.national_id == "1234567"
    assert buyer.hashed_password != PASSWORD
    assert verify_password(PASSWORD, buyer.hashed_password)


def test_email_is_unique_across_roles(conn):
    make_buyer(conn, email="same@example.com")
    with pytest.raises(ConflictError):
        make_dealership(conn, email="SAME@example.com")


@pytest.mark.parametrize("national_id", ["12345", "1234567890", "   "])
def test_buyer_national_id_length(conn, national_id):
    with pytest.raises(ValidationError):
        make_buyer(conn, national_id=national_id)


def test_duplicate_national_id_rejected_without_echoing_it(conn):
    make_buyer(conn, email="a@example.com", national_id="99887766")
    with pytest.raises(ConflictError) as exc_info:
        make_buyer(conn, email="b@example.com", national_id="99887766")
    assert "99887766" not in exc_info.value.detail


def test_duplicate_tax_id_rejected_without_echoing_it(conn):
    make_dealership(conn, email="a@example.com", tax_id="30-55555555-5")
    with pytest.raises(ConflictError) as exc_info:
        make_dealership(conn, email="b@example.com", tax_id="30-55555555-5")
    assert "30-55555555-5" not in exc_info.value.detail


def test_dealership_display_name_prefers_business_name(dealership):
    assert dealership.display_name == "Autos Sur"
    assert dealership.dealership.full_address == "Av. Siempre Viva 742, Quilmes, Buenos Aires"


def test_search_dealerships_is_case_insensitive_and_skips_inactive(
    conn, admin, dealership, other_dealership
):
    service = UserService(conn)
    found = service.search_dealerships(business_name="autos")
    assert {d.id for d in found} == {dealership.id, other_dealership.id}
    # newest first
    assert found[0].id == other_dealership.id

    assert [d.id for d in service.search_dealerships(business_name="NORTE")] == [other_dealership.id]

    service.set_active(other_dealership.id, False, updated_by=admin)
    assert [d.id for d in service.search_dealerships(city="quilmes")] == [dealership.id]


def test_update_profile_routes_role_fields(conn, buyer):
    updated = UserService(conn).update_profile(
        buyer.id,
        UserUpdate(first_name="Anita", address="Nueva 1", business_name="ignored"),
        updated_by=buyer,
    )
    assert updated.first_name == "Anita"
    assert updated.buyer.address == "Nueva 1"
    assert updated.dealership is None
    assert updated.role == UserRole.BUYER


def test_update_profile_requires_owner_or_admin(conn, admin, buyer, other_buyer):
    service = UserService(conn)
    with pytest.raises(PermissionDeniedError):
        service.update_profile(buyer.id, UserUpdate(first_name="X"), updated_by=other_buyer)
    updated = service.update_profile(buyer.id, UserUpdate(phone="555-9999"), updated_by=admin)
    assert updated.phone == "555-9999"


def test_update_profile_rechecks_uniqueness(conn, buyer, other_buyer):
    with pytest.raises(ConflictError):
        UserService(conn).update_profile(
            buyer.id, UserUpdate(national_id=other_buyer.buyer.national_id), updated_by=buyer
        )


def test_set_active_is_admin_only(conn, admin, buyer):
    service = UserService(conn)
    with pytest.raises(PermissionDeniedError):
        service.set_active(buyer.id, False, updated_by=buyer)
    assert service.set_active(buyer.id, False, updated_by=admin).is_active is False


def test_inactive_buyer_counts_as_missing(conn, admin, buyer):
    service = UserService(conn)
    service.set_active(buyer.id, False, updated_by=admin)
    with pytest.raises(NotFoundError):
        service.get_buyer(buyer.id)
    # still visible as a plain user record
    assert service.get_user(buyer.id).id == buyer.id


def test_get_dealership_rejects_other_roles(conn, buyer):
    with pytest.raises(NotFoundError):
        UserService(conn).get_dealership(buyer.id)
