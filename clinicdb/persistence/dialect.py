"""
SQL dialects supported by the query builder.

A dialect captures the few places where the two supported engines differ:
parameter placeholder style, the case-insensitive LIKE operator, and which
driver exceptions mean "the connection is gone" versus "the statement failed".
Paging uses ``LIMIT ? OFFSET ?`` which both engines accept.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional, Tuple, Type

import psycopg
import psycopg.errors

from clinicdb.domain.entity import FieldKind
from clinicdb.errors import DatabaseConnectionError, QueryError


def quote_identifier(name: str) -> str:
    """Double-quote an identifier; dotted names are quoted part by part."""
    return ".".join('"' + part.replace('"', '""') + '"' for part in name.split("."))


@dataclass(frozen=True)
class Dialect:
    name: str
    placeholder: str
    like_operator: str
    connection_errors: Tuple[Type[BaseException], ...]
    query_errors: Tuple[Type[BaseException], ...]
    # subclasses of connection_errors that still mean "the statement failed"
    statement_errors: Tuple[Type[BaseException], ...] = ()
    decimal_sort_type: Optional[str] = None

    def placeholders(self, count: int) -> str:
        return ", ".join([self.placeholder] * count)

    def escape_literal_sql(self, sql: str) -> str:
        """
        Make parameterless SQL text safe to send alongside bound parameters.

        With ``%s`` placeholders the driver parses every ``%`` in the text, so
        literal percent signs are doubled.
        """
        if self.placeholder == "%s":
            return sql.replace("%", "%%")
        return sql

    def sort_key(self, column_sql: str, kind: Optional[FieldKind]) -> str:
        """ORDER BY expression for a quoted column of the given kind."""
        if kind is FieldKind.DECIMAL and self.decimal_sort_type:
            return f"CAST({column_sql} AS {self.decimal_sort_type})"
        return column_sql

    def translate(self, exc: BaseException) -> QueryError:
        """
        Wrap a driver exception in the matching domain error.

        Callers should ``raise dialect.translate(exc) from exc``.
        """
        if isinstance(exc, self.connection_errors) and not isinstance(exc, self.statement_errors):
            return DatabaseConnectionError(f"{self.name} connection failure: {exc}")
        return QueryError(f"{self.name} query failed: {exc}")

    @property
    def driver_errors(self) -> Tuple[Type[BaseException], ...]:
        return self.connection_errors + self.query_errors


POSTGRES = Dialect(
    name="postgres",
    placeholder="%s",
    like_operator="ILIKE",
    connection_errors=(psycopg.OperationalError, psycopg.InterfaceError),
    query_errors=(psycopg.Error,),
    statement_errors=(psycopg.errors.QueryCanceled, psycopg.errors.DeadlockDetected),
)

# sqlite3 has no transport layer; every driver error is a statement failure.
# Decimals are stored as text, so they sort through a numeric cast.
SQLITE = Dialect(
    name="sqlite",
    placeholder="?",
    like_operator="LIKE",
    connection_errors=(),
    query_errors=(sqlite3.Error,),
    decimal_sort_type="REAL",
)


def dialect_for(backend: str) -> Dialect:
    dialects = {POSTGRES.name: POSTGRES, SQLITE.name: SQLITE}
    if backend not in dialects:
        raise ValueError(f"Unknown backend '{backend}'. Available: {', '.join(sorted(dialects))}")
    return dialects[backend]


__all__ = ["Dialect", "POSTGRES", "SQLITE", "dialect_for", "quote_identifier"]
