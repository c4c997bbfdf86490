"""
Infrastructure package for the clinic data-access layer.

Centralizes connection concerns (PostgreSQL via psycopg, SQLite for the
desktop setup). Keep this layer focused on I/O and resource management,
decoupled from SQL synthesis and mapping.
"""

from clinicdb.infrastructure.db_factory import (
    build_dsn,
    get_sqlite_connection,
    get_sync_connection,
    open_connection,
)

__all__ = [
    "build_dsn",
    "get_sqlite_connection",
    "get_sync_connection",
    "open_connection",
]
