"""
Generic entity repository.

Binds an ``EntityDescriptor``, a ``QueryBuilder`` and a ``RowMapper`` to one
DB-API 2.0 connection (psycopg or sqlite3) and exposes CRUD, paging, search and
join operations. Each operation is one synchronous round trip on the
connection: validate, build, execute, commit, map.

The connection is owned by the caller. The repository never closes it and does
no locking; callers sharing one connection between repositories must not use
it from several threads at once.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Generic, Iterator, List, Mapping, Optional, TypeVar, cast

from clinicdb.domain.entity import ID_COLUMN, Entity, EntityDescriptor
from clinicdb.domain.pagination import Pagination
from clinicdb.errors import InvalidStateError, MappingError
from clinicdb.persistence.dialect import POSTGRES, Dialect
from clinicdb.persistence.query_builder import (
    CHILD_ALIAS,
    COUNT_LABEL,
    PARENT_ALIAS,
    FilterLike,
    QueryBuilder,
    Statement,
    alias_prefix,
)
from clinicdb.persistence.row_mapper import RowMapper
from clinicdb.utils.logging import get_logger

E = TypeVar("E", bound=Entity)

log = get_logger(__name__)


def _as_dict(columns: List[str], row: Any) -> Dict[str, Any]:
    if isinstance(row, Mapping):
        return dict(row)
    return dict(zip(columns, row))


class EntityRepository(Generic[E]):
    """
    CRUD/search/join/page operations for the entity type of ``descriptor``.

    Parameters
    ----------
    connection : Any
        An open DB-API 2.0 connection. Never closed by the repository.
    descriptor : EntityDescriptor
        Persistence metadata of the managed entity type.
    dialect : Dialect
        SQL dialect of the connection (``POSTGRES`` or ``SQLITE``).
    """

    def __init__(
        self,
        connection: Any,
        descriptor: EntityDescriptor,
        dialect: Dialect = POSTGRES,
        query_builder: Optional[QueryBuilder] = None,
        row_mapper: Optional[RowMapper] = None,
    ) -> None:
        self.connection = connection
        self.descriptor = descriptor
        self.dialect = dialect
        self.query_builder = query_builder or QueryBuilder(dialect)
        self.row_mapper = row_mapper or RowMapper()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.descriptor.name}, dialect={self.dialect.name})"

    # ── plumbing ──────────────────────────────────────────

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except self.dialect.driver_errors as exc:
            log.warning("Rollback failed on %s: %s", self.descriptor.table, exc)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """
        Yield a cursor and commit on success.

        Driver errors roll back and surface as ``QueryError`` /
        ``DatabaseConnectionError``; any other error rolls back and propagates.
        """
        try:
            cursor = self.connection.cursor()
        except self.dialect.driver_errors as exc:
            raise self.dialect.translate(exc) from exc
        try:
            yield cursor
            self.connection.commit()
        except self.dialect.driver_errors as exc:
            self._rollback()
            log.error(
                "Statement failed on %s: %s",
                self.descriptor.table,
                exc,
                extra={"table": self.descriptor.table},
            )
            raise self.dialect.translate(exc) from exc
        except Exception:
            self._rollback()
            raise
        finally:
            cursor.close()

    @staticmethod
    def _execute(cursor: Any, statement: Statement) -> None:
        log.debug("Executing: %s", statement.sql, extra={"param_count": len(statement.params)})
        if statement.params:
            cursor.execute(statement.sql, statement.params)
        else:
            cursor.execute(statement.sql)

    @staticmethod
    def _fetch_all(cursor: Any) -> List[Dict[str, Any]]:
        columns = [column[0] for column in cursor.description or ()]
        return [_as_dict(columns, row) for row in cursor.fetchall()]

    def _map(self, row: Mapping[str, Any], prefix: str = "") -> E:
        return cast(E, self.row_mapper.map(row, self.descriptor, prefix))

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, entity_id: int) -> Optional[E]:
        """Return the entity with ``entity_id`` or None if no row matches."""
        statement = self.query_builder.select_by_id(self.descriptor, entity_id)
        with self._cursor() as cursor:
            self._execute(cursor, statement)
            rows = self._fetch_all(cursor)
        return self._map(rows[0]) if rows else None

    def count(self) -> int:
        """Unconditional row count of the table."""
        with self._cursor() as cursor:
            return self._count(cursor)

    def _count(self, cursor: Any) -> int:
        self._execute(cursor, self.query_builder.count(self.descriptor))
        rows = self._fetch_all(cursor)
        return int(rows[0][COUNT_LABEL]) if rows else 0

    def get_page(self, pagination: Pagination, filter_clause: FilterLike = "") -> List[E]:
        """
        Fetch one page of entities.

        ``pagination.total_records`` is recomputed first from an unconditional
        count and written back into the caller's object.
        """
        statement = self.query_builder.select_page(self.descriptor, pagination, filter_clause)
        with self._cursor() as cursor:
            pagination.total_records = self._count(cursor)
            self._execute(cursor, statement)
            rows = self._fetch_all(cursor)
        return [self._map(row) for row in rows]

    def search(self, pagination: Pagination, term: str) -> List[E]:
        """Page of entities with ``term`` in any persisted column (case-insensitive)."""
        return self.get_page(pagination, self.query_builder.search_filter(self.descriptor, term))

    def children_of(
        self, parent: EntityDescriptor, parent_id: int, pagination: Pagination
    ) -> List[E]:
        """Page of entities referencing ``parent_id`` through ``<parent>_id``."""
        if not self.descriptor.has_column(parent.foreign_key_column):
            raise InvalidStateError(
                f"{self.descriptor.name} has no {parent.foreign_key_column!r} column"
            )
        return self.get_page(pagination, self.query_builder.foreign_key_filter(parent, parent_id))

    def join(
        self,
        child_repository: "EntityRepository[Any]",
        fk_column: str,
        pk_column: str = ID_COLUMN,
    ) -> List[E]:
        """
        Inner-join this table with the child repository's table.

        Each result row becomes one parent entity with the mapped child entity
        attached through the parent's declared relation.

        Raises
        ------
        MappingError
            If the parent descriptor declares no relation for the child type.
        """
        child = child_repository.descriptor
        relation = self.descriptor.relation_for(child.entity_type)
        if relation is None:
            raise MappingError(
                f"{self.descriptor.name} declares no relation for {child.name}"
            )

        statement = self.query_builder.join(self.descriptor, child, fk_column, pk_column)
        with self._cursor() as cursor:
            self._execute(cursor, statement)
            rows = self._fetch_all(cursor)

        entities: List[E] = []
        for row in rows:
            parent_entity = self._map(row, alias_prefix(PARENT_ALIAS))
            child_entity = child_repository.row_mapper.map(row, child, alias_prefix(CHILD_ALIAS))
            relation.attach(parent_entity, child_entity)
            entities.append(parent_entity)
        return entities

    # ── WRITE ─────────────────────────────────────────────

    def create(self, entity: E) -> int:
        """
        Insert ``entity`` and return its generated id.

        The id is also assigned to ``entity``.
        """
        if entity.id is not None:
            raise InvalidStateError(
                f"{self.descriptor.name} #{entity.id} is already persisted"
            )
        statement = self.query_builder.insert(self.descriptor, entity)
        with self._cursor() as cursor:
            self._execute(cursor, statement)
            rows = self._fetch_all(cursor)
        if not rows:
            raise MappingError(f"INSERT into {self.descriptor.table} returned no id")

        new_id = int(rows[0][ID_COLUMN])
        entity.id = new_id
        log.info("Created %s #%s", self.descriptor.name, new_id, extra={"table": self.descriptor.table})
        return new_id

    def edit(self, entity: E) -> bool:
        """Update ``entity`` by id; return True iff exactly one row changed."""
        statement = self.query_builder.update(self.descriptor, entity)
        with self._cursor() as cursor:
            self._execute(cursor, statement)
            updated = cursor.rowcount == 1
        log.info(
            "Edited %s #%s: %s",
            self.descriptor.name,
            entity.id,
            "ok" if updated else "no match",
            extra={"table": self.descriptor.table},
        )
        return updated

    def delete(self, entity_id: int) -> bool:
        """Delete by id; return True iff exactly one row was removed."""
        statement = self.query_builder.delete(self.descriptor, entity_id)
        with self._cursor() as cursor:
            self._execute(cursor, statement)
            deleted = cursor.rowcount == 1
        log.info(
            "Deleted %s #%s: %s",
            self.descriptor.name,
            entity_id,
            "ok" if deleted else "no match",
            extra={"table": self.descriptor.table},
        )
        return deleted


__all__ = ["EntityRepository"]
