"""
SQL DDL statements for all application tables.
Tables are created in dependency order so foreign keys resolve correctly.

Migration helpers run ALTER TABLE only when a column does not yet exist,
making them safe to call on every startup (idempotent).
"""
from carmarket.db.database import get_connection

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

CREATE_USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    email             TEXT    NOT NULL UNIQUE,
    hashed_password   TEXT    NOT NULL,
    first_name        TEXT    NOT NULL,
    last_name         TEXT    NOT NULL,
    phone             TEXT    NOT NULL DEFAULT '',
    role              TEXT    NOT NULL
                              CHECK(role IN ('admin', 'buyer', 'dealership')),
    is_active         INTEGER NOT NULL DEFAULT 1,
    registration_date TEXT    NOT NULL DEFAULT (datetime('now')),
    created_at        TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at        TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

CREATE_BUYER_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS buyer_profiles (
    user_id      INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    national_id  TEXT    NOT NULL UNIQUE,
    address      TEXT
);
"""

CREATE_DEALERSHIP_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS dealership_profiles (
    user_id        INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    business_name  TEXT    NOT NULL,
    tax_id         TEXT    NOT NULL UNIQUE,
    address        TEXT,
    city           TEXT,
    province       TEXT,
    description    TEXT
);
"""

CREATE_CARS_TABLE = """
CREATE TABLE IF NOT EXISTS cars (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    brand             TEXT    NOT NULL,
    model             TEXT    NOT NULL,
    year              INTEGER NOT NULL CHECK(year > 0),
    mileage           INTEGER NOT NULL DEFAULT 0 CHECK(mileage >= 0),
    color             TEXT    NOT NULL,
    fuel_type         TEXT    NOT NULL DEFAULT 'GASOLINE'
                              CHECK(fuel_type IN ('GASOLINE', 'DIESEL', 'ELECTRIC', 'HYBRID')),
    transmission      TEXT    NOT NULL DEFAULT 'MANUAL'
                              CHECK(transmission IN ('MANUAL', 'AUTOMATIC', 'SEMI_AUTOMATIC')),
    plate             TEXT    NOT NULL,
    description       TEXT,
    publication_date  TEXT    NOT NULL DEFAULT (datetime('now')),
    available         INTEGER NOT NULL DEFAULT 1,
    created_at        TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at        TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

CREATE_CAR_IMAGES_TABLE = """
CREATE TABLE IF NOT EXISTS car_images (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    car_id     INTEGER NOT NULL REFERENCES cars(id) ON DELETE CASCADE,
    image_url  TEXT    NOT NULL,
    position   INTEGER NOT NULL DEFAULT 0
);
"""

CREATE_CAR_OFFERS_TABLE = """
CREATE TABLE IF NOT EXISTS car_offers (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    car_id            INTEGER NOT NULL REFERENCES cars(id) ON DELETE RESTRICT,
    dealership_id     INTEGER NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
    price             REAL    NOT NULL CHECK(price >= 0),
    offer_date        TEXT    NOT NULL DEFAULT (datetime('now')),
    dealership_notes  TEXT,
    available         INTEGER NOT NULL DEFAULT 1,
    version           INTEGER NOT NULL DEFAULT 0,
    created_at        TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at        TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

CREATE_PURCHASES_TABLE = """
CREATE TABLE IF NOT EXISTS purchases (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    buyer_id        INTEGER NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
    car_offer_id    INTEGER NOT NULL REFERENCES car_offers(id) ON DELETE RESTRICT,
    final_price     REAL    NOT NULL CHECK(final_price >= 0),
    purchase_date   TEXT    NOT NULL DEFAULT (datetime('now')),
    status          TEXT    NOT NULL DEFAULT 'PENDING'
                            CHECK(status IN ('PENDING', 'CONFIRMED', 'DELIVERED', 'CANCELLED')),
    payment_method  TEXT    NOT NULL DEFAULT 'CASH'
                            CHECK(payment_method IN ('CASH', 'CREDIT_CARD', 'CHECK')),
    observations    TEXT,
    created_at      TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at      TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

CREATE_FAVORITE_CARS_TABLE = """
CREATE TABLE IF NOT EXISTS favorite_cars (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    buyer_id             INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    car_id               INTEGER NOT NULL REFERENCES cars(id) ON DELETE CASCADE,
    date_added           TEXT    NOT NULL DEFAULT (datetime('now')),
    rating               INTEGER CHECK(rating IS NULL OR (rating >= 0 AND rating <= 10)),
    comment              TEXT,
    price_notifications  INTEGER NOT NULL DEFAULT 0,
    created_at           TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at           TEXT    NOT NULL DEFAULT (datetime('now')),
    UNIQUE(buyer_id, car_id)
);
"""

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS ix_car_offers_car_dealership ON car_offers(car_id, dealership_id)",
    "CREATE INDEX IF NOT EXISTS ix_purchases_offer ON purchases(car_offer_id)",
    "CREATE INDEX IF NOT EXISTS ix_purchases_buyer ON purchases(buyer_id)",
    "CREATE INDEX IF NOT EXISTS ix_favorite_cars_car ON favorite_cars(car_id)",
]

# ---------------------------------------------------------------------------
# Incremental migrations (idempotent – safe to run every startup)
# ---------------------------------------------------------------------------

MIGRATIONS = [
    # Databases created before optimistic locking existed lack the column
    ("car_offers", "version", "ALTER TABLE car_offers ADD COLUMN version INTEGER NOT NULL DEFAULT 0"),
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ALL_TABLES = [
    CREATE_USERS_TABLE,
    CREATE_BUYER_PROFILES_TABLE,
    CREATE_DEALERSHIP_PROFILES_TABLE,
    CREATE_CARS_TABLE,
    CREATE_CAR_IMAGES_TABLE,
    CREATE_CAR_OFFERS_TABLE,
    CREATE_PURCHASES_TABLE,
    CREATE_FAVORITE_CARS_TABLE,
]


def _column_exists(conn, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    return any(r["name"] == column for r in rows)


def create_tables() -> None:
    """Create all tables and apply incremental migrations."""
    conn = get_connection()
    try:
        cursor = conn.cursor()

        # 1. Create tables (IF NOT EXISTS – safe on every restart)
        for ddl in ALL_TABLES:
            cursor.execute(ddl)
        for ddl in CREATE_INDEXES:
            cursor.execute(ddl)

        # 2. Run migrations only when the column is missing
        for table, column, alter_sql in MIGRATIONS:
            if not _column_exists(conn, table, column):
                cursor.execute(alter_sql)

        conn.commit()
    finally:
        conn.close()
