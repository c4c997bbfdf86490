"""
Domain exceptions for the clinic data-access layer.

Every failure raised by the repository, query builder, row mapper or entity
descriptors maps to one of these classes. Driver exceptions (psycopg, sqlite3)
are never leaked directly; they are wrapped with ``raise ... from exc`` so the
original error stays available as ``__cause__``.
"""

from __future__ import annotations


class ClinicDbError(RuntimeError):
    """Base exception for all data-access failures."""


class QueryError(ClinicDbError):
    """Raised when a statement is malformed or violates a constraint."""


class DatabaseConnectionError(QueryError):
    """Raised when the database cannot be reached or the connection is broken."""


class MappingError(ClinicDbError):
    """Raised when a result row does not match what a descriptor expects."""


class InvalidStateError(ClinicDbError):
    """Raised when a caller violates an operation precondition."""


class DescriptorError(ClinicDbError):
    """Raised when an entity descriptor is misconfigured."""


__all__ = [
    "ClinicDbError",
    "QueryError",
    "DatabaseConnectionError",
    "MappingError",
    "InvalidStateError",
    "DescriptorError",
]
