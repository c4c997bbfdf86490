"""
Database connection factory for the clinic data-access layer.

Opens the single synchronous connection the repositories work on: PostgreSQL
through psycopg (with retry for transient failures) or a local SQLite file for
the standalone desktop setup. Connections returned here are owned by the
caller, who must close them.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Tuple

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from clinicdb.config import Settings, get_settings
from clinicdb.errors import DatabaseConnectionError
from clinicdb.persistence.dialect import POSTGRES, SQLITE, Dialect
from clinicdb.utils.logging import get_logger

log = get_logger(__name__)

# sqlite3 stores these as ISO or decimal text and hands them back typed through
# the declared column types DATE, TIMESTAMP and DECIMAL_TEXT. DECIMAL_TEXT has
# TEXT affinity, so decimals keep every digit.
sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(date, date.isoformat)
sqlite3.register_adapter(datetime, lambda value: value.isoformat(sep=" "))
sqlite3.register_converter("DECIMAL_TEXT", lambda raw: Decimal(raw.decode()))
sqlite3.register_converter("DATE", lambda raw: date.fromisoformat(raw.decode()))
sqlite3.register_converter("TIMESTAMP", lambda raw: datetime.fromisoformat(raw.decode()))


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a PostgreSQL DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(conn: Connection, timeout_ms: int) -> None:
    """Set the session statement timeout; 0 disables it."""
    with conn.cursor() as cur:
        cur.execute("SELECT set_config('statement_timeout', %s, false)", (str(timeout_ms),))
    conn.commit()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def _connect_with_retry(dsn: str) -> Connection:
    return psycopg.connect(dsn)


def get_sync_connection(
    dsn_override: Optional[str] = None, settings: Optional[Settings] = None
) -> Connection:
    """
    Acquire a dedicated synchronous PostgreSQL connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors, then applies the configured statement timeout.

    Raises
    ------
    DatabaseConnectionError
        If connection fails after all retry attempts.
    """
    settings = settings or get_settings()
    try:
        conn = _connect_with_retry(dsn_override or build_dsn(settings))
    except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
        log.error("Could not connect to PostgreSQL: %s", exc)
        raise DatabaseConnectionError(f"Could not connect to PostgreSQL: {exc}") from exc
    if settings.db_statement_timeout_ms:
        apply_statement_timeout(conn, settings.db_statement_timeout_ms)
    return conn


def get_sqlite_connection(path: str) -> sqlite3.Connection:
    """
    Open a SQLite database (``":memory:"`` for a throwaway one).

    Declared column types DATE, TIMESTAMP and DECIMAL_TEXT are converted back to
    ``date``, ``datetime`` and ``Decimal``.
    """
    try:
        conn = sqlite3.connect(path, detect_types=sqlite3.PARSE_DECLTYPES)
        conn.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as exc:
        raise DatabaseConnectionError(f"Could not open SQLite database {path!r}: {exc}") from exc
    return conn


def open_connection(settings: Optional[Settings] = None) -> Tuple[Any, Dialect]:
    """Open a connection for the configured backend and return it with its dialect."""
    settings = settings or get_settings()
    if settings.db_backend == "sqlite":
        return get_sqlite_connection(settings.sqlite_path), SQLITE
    return get_sync_connection(settings=settings), POSTGRES


__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "get_sqlite_connection",
    "get_sync_connection",
    "open_connection",
]
