"""Database connection helpers and initialization."""

import logging
import os
import sqlite3
from contextlib import contextmanager

from carmarket.core.config import settings

logger = logging.getLogger(__name__)


def get_db_path() -> str:
    """Return the SQLite file path from the configured DATABASE_URL."""
    return settings.DATABASE_URL.replace("sqlite:///", "")


def _ensure_db_dir(db_path: str) -> None:
    db_dir = os.path.dirname(db_path) or "."
    os.makedirs(db_dir, exist_ok=True)


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection with row factory."""
    db_path = get_db_path()
    _ensure_db_dir(db_path)
    logger.trace("Opening database connection to %s", db_path)
    conn = sqlite3.connect(
        db_path,
        timeout=settings.DB_BUSY_TIMEOUT_SECONDS,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_db():
    """
    Yield a connection scoped to one unit of work.

    Everything executed on the connection commits together when the block
    exits normally and rolls back together on any exception.
    """
    conn = get_connection()
    try:
        yield conn
        conn.commit()
        logger.trace("Database transaction committed")
    except Exception:
        conn.rollback()
        logger.trace("Database transaction rolled back")
        raise
    finally:
        conn.close()
        logger.trace("Database connection closed")


def begin_write(conn: sqlite3.Connection) -> None:
    """
    Take the database write lock now, before the reads of a read-then-write
    sequence, so those reads see every previously committed writer.

    Waits up to ``DB_BUSY_TIMEOUT_SECONDS`` for a concurrent writer. A no-op
    when the connection already holds an open transaction.
    """
    if conn.in_transaction:
        return
    logger.trace("Beginning immediate write transaction")
    conn.execute("BEGIN IMMEDIATE")


def init_db() -> None:
    """Initialize the database by creating all tables."""
    logger.info("Initializing database schema at %s", get_db_path())
    from carmarket.db import schema

    schema.create_tables()
