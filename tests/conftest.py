"""
Pytest configuration for the clinic data-access layer.

Provides fixtures for:
- In-memory SQLite connections with the clinic schema (unit tests)
- PostgreSQL connection management and table cleanup (integration tests)
- Settings isolation from the developer's environment
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import psycopg
import pytest

from clinicdb.config import Settings, get_settings
from clinicdb.domain.clinic import APPOINTMENT, MEDICINE, PATIENT
from clinicdb.infrastructure.db_factory import get_sqlite_connection
from clinicdb.persistence.dialect import POSTGRES, SQLITE
from clinicdb.persistence.repository import EntityRepository

SCHEMA_DIR = Path(__file__).parent.parent / "db"

_SETTINGS_ENV = (
    "DB_BACKEND",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_STATEMENT_TIMEOUT_MS",
    "SQLITE_PATH",
    "APP_ENV",
    "LOG_LEVEL",
    "DEFAULT_PAGE_SIZE",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Remove settings-related variables and reset the cached Settings.
    """
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def init_sqlite_schema(conn) -> None:
    conn.executescript((SCHEMA_DIR / "init_sqlite.sql").read_text(encoding="utf-8"))


@pytest.fixture
def sqlite_connection():
    """
    Fresh in-memory SQLite database with the clinic schema.
    """
    conn = get_sqlite_connection(":memory:")
    init_sqlite_schema(conn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def patient_repo(sqlite_connection) -> EntityRepository:
    return EntityRepository(sqlite_connection, PATIENT, SQLITE)


@pytest.fixture
def medicine_repo(sqlite_connection) -> EntityRepository:
    return EntityRepository(sqlite_connection, MEDICINE, SQLITE)


@pytest.fixture
def appointment_repo(sqlite_connection) -> EntityRepository:
    return EntityRepository(sqlite_connection, APPOINTMENT, SQLITE)


# ── PostgreSQL (integration) ──────────────────────────────


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "clinic"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        with conn.cursor() as cur:
            cur.execute((SCHEMA_DIR / "init.sql").read_text(encoding="utf-8"))
        conn.commit()
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_clinic_tables(db_connection: psycopg.Connection):
    """
    Empty the clinic tables and reset identities around each test.
    """
    truncate = (
        "TRUNCATE TABLE public.appointments, public.medicines, public.patients "
        "RESTART IDENTITY CASCADE;"
    )
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()
    yield db_connection
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    db_connection.commit()


@pytest.fixture
def pg_patient_repo(clean_clinic_tables) -> EntityRepository:
    return EntityRepository(clean_clinic_tables, PATIENT, POSTGRES)


@pytest.fixture
def pg_appointment_repo(clean_clinic_tables) -> EntityRepository:
    return EntityRepository(clean_clinic_tables, APPOINTMENT, POSTGRES)
