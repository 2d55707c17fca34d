import os
import tempfile


# Ensure sensible defaults for tests before app import
_TEST_DIR = tempfile.mkdtemp(prefix="carmarket-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DIR}/carmarket.db")
os.environ.setdefault("LOG_FILE_PATH", os.path.join(_TEST_DIR, "app.log"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_TRACE_CALLS", "false")
os.environ.setdefault("SEED_ADMIN", "false")

import pytest  # noqa: E402

import carmarket.core.logging_config  # noqa: E402,F401  registers Logger.trace
from carmarket.core.config import settings  # noqa: E402
from carmarket.db.database import get_connection, init_db  # noqa: E402

from .utils import make_admin, make_buyer, make_car, make_dealership, make_offer  # noqa: E402


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh schema in a per-test SQLite file."""
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'carmarket.db'}")
    init_db()
    yield tmp_path


@pytest.fixture
def conn(db):
    connection = get_connection()
    yield connection
    connection.close()


@pytest.fixture
def admin(conn):
    user = make_admin(conn)
    conn.commit()
    return user


@pytest.fixture
def buyer(conn):
    user = make_buyer(conn, email="ana@example.com", national_id="1234567", first_name="Ana")
    conn.commit()
    return user


@pytest.fixture
def other_buyer(conn):
    user = make_buyer(conn, email="bruno@example.com", national_id="7654321", first_name="Bruno")
    conn.commit()
    return user


@pytest.fixture
def dealership(conn):
    user = make_dealership(conn, email="sales@autosur.example.com", tax_id="30-11111111-1")
    conn.commit()
    return user


@pytest.fixture
def other_dealership(conn):
    user = make_dealership(
        conn,
        email="sales@norte.example.com",
        tax_id="30-22222222-2",
        business_name="Autos Norte",
    )
    conn.commit()
    return user


@pytest.fixture
def car(conn):
    created = make_car(conn)
    conn.commit()
    return created


@pytest.fixture
def offer(conn, car, dealership):
    created = make_offer(conn, car, dealership)
    conn.commit()
    return created
