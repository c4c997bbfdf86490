"""
SQL statement synthesis from entity descriptors.

The builder owns the structural shape of every statement (tables, columns,
ordering, paging) and never performs I/O. Values are always returned as bound
parameters next to the SQL text; identifiers are always double-quoted.

Usage:
    builder = QueryBuilder(POSTGRES)
    stmt = builder.select_page(PATIENT, Pagination(page_number=2), "")
    cursor.execute(stmt.sql, stmt.params)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from clinicdb.domain.entity import ID_COLUMN, Entity, EntityDescriptor, normalize_field_name
from clinicdb.domain.pagination import Pagination
from clinicdb.errors import DescriptorError, InvalidStateError
from clinicdb.persistence.dialect import POSTGRES, Dialect, quote_identifier

PARENT_ALIAS = "a"
CHILD_ALIAS = "b"
COUNT_LABEL = "number"


def alias_prefix(alias: str) -> str:
    """Prefix of the labels a join gives to one side's columns, e.g. ``a__``."""
    return f"{alias}__"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so ``term`` matches literally (escape char ``\\``)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Statement:
    """SQL text plus the parameters bound to its placeholders."""

    sql: str
    params: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class FilterClause:
    """
    A caller-built WHERE fragment, passed through verbatim.

    ``sql`` includes the ``WHERE`` keyword (or is empty). Values belong in
    ``params`` using the dialect's placeholder; the builder does not inspect
    or escape the fragment, except that a fragment without params gets its
    literal ``%`` signs doubled on ``%s`` dialects. Fragments with params
    must write ``%%`` themselves there.
    """

    sql: str = ""
    params: Tuple[Any, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.sql.strip())

    @classmethod
    def coerce(cls, value: Union[None, str, "FilterClause"]) -> "FilterClause":
        if value is None:
            return cls()
        if isinstance(value, FilterClause):
            return value
        return cls(sql=value)


FilterLike = Union[None, str, FilterClause]


class QueryBuilder:
    """Builds SELECT/INSERT/UPDATE/DELETE/JOIN/search statements for one dialect."""

    def __init__(self, dialect: Dialect = POSTGRES) -> None:
        self.dialect = dialect

    @property
    def _ph(self) -> str:
        return self.dialect.placeholder

    def select_by_id(self, descriptor: EntityDescriptor, entity_id: int) -> Statement:
        return Statement(
            f"SELECT * FROM {quote_identifier(descriptor.table)} "
            f"WHERE {quote_identifier(ID_COLUMN)} = {self._ph}",
            (entity_id,),
        )

    def count(self, descriptor: EntityDescriptor) -> Statement:
        """Unconditional row count; filters are deliberately not applied."""
        return Statement(
            f"SELECT count({quote_identifier(ID_COLUMN)}) AS {COUNT_LABEL} "
            f"FROM {quote_identifier(descriptor.table)}"
        )

    def _order_by(self, descriptor: EntityDescriptor, pagination: Pagination) -> str:
        id_column = quote_identifier(ID_COLUMN)
        if not pagination.is_sorted:
            return f"ORDER BY {id_column} ASC"

        column = normalize_field_name(pagination.sort_by or "")
        if not descriptor.has_column(column):
            raise InvalidStateError(f"{descriptor.name} has no column {column!r} to sort by")
        direction = pagination.sort_order.value  # type: ignore[union-attr]
        if column == ID_COLUMN:
            return f"ORDER BY {id_column} {direction}"
        kind = next((b.kind for b in descriptor.fields if b.column == column), None)
        sort_key = self.dialect.sort_key(quote_identifier(column), kind)
        # id breaks ties so pages never overlap
        return f"ORDER BY {sort_key} {direction}, {id_column} ASC"

    def select_page(
        self,
        descriptor: EntityDescriptor,
        pagination: Pagination,
        filter_clause: FilterLike = None,
    ) -> Statement:
        clause = FilterClause.coerce(filter_clause)
        parts = [f"SELECT * FROM {quote_identifier(descriptor.table)}"]
        if clause and clause.params:
            parts.append(clause.sql.strip())
        elif clause:
            parts.append(self.dialect.escape_literal_sql(clause.sql.strip()))
        parts.append(self._order_by(descriptor, pagination))
        parts.append(f"LIMIT {self._ph} OFFSET {self._ph}")
        return Statement(" ".join(parts), tuple(clause.params) + (pagination.limit, pagination.offset))

    def _writable_values(self, descriptor: EntityDescriptor, entity: Entity) -> dict:
        values = descriptor.values(entity)
        if not values:
            raise DescriptorError(f"{descriptor.name} has no writable columns")
        return values

    def insert(self, descriptor: EntityDescriptor, entity: Entity) -> Statement:
        values = self._writable_values(descriptor, entity)
        columns = ", ".join(quote_identifier(column) for column in values)
        return Statement(
            f"INSERT INTO {quote_identifier(descriptor.table)} ({columns}) "
            f"VALUES ({self.dialect.placeholders(len(values))}) "
            f"RETURNING {quote_identifier(ID_COLUMN)}",
            tuple(values.values()),
        )

    def update(self, descriptor: EntityDescriptor, entity: Entity) -> Statement:
        if entity.id is None:
            raise InvalidStateError(f"Cannot update a {descriptor.name} without an id")
        values = self._writable_values(descriptor, entity)
        assignments = ", ".join(f"{quote_identifier(column)} = {self._ph}" for column in values)
        return Statement(
            f"UPDATE {quote_identifier(descriptor.table)} SET {assignments} "
            f"WHERE {quote_identifier(ID_COLUMN)} = {self._ph}",
            tuple(values.values()) + (entity.id,),
        )

    def delete(self, descriptor: EntityDescriptor, entity_id: int) -> Statement:
        return Statement(
            f"DELETE FROM {quote_identifier(descriptor.table)} "
            f"WHERE {quote_identifier(ID_COLUMN)} = {self._ph}",
            (entity_id,),
        )

    @staticmethod
    def _labelled_columns(alias: str, descriptor: EntityDescriptor) -> str:
        prefix = alias_prefix(alias)
        return ", ".join(
            f"{alias}.{quote_identifier(column)} AS {quote_identifier(prefix + column)}"
            for column in (ID_COLUMN,) + descriptor.columns
        )

    def join(
        self,
        parent: EntityDescriptor,
        child: EntityDescriptor,
        fk_column: str,
        pk_column: str = ID_COLUMN,
    ) -> Statement:
        """
        Inner join ``parent`` (alias ``a``) with ``child`` (alias ``b``).

        Every declared column of both sides is selected and labelled
        ``a__<column>`` / ``b__<column>`` so one row carries both entities.
        """
        fk = normalize_field_name(fk_column)
        pk = normalize_field_name(pk_column)
        if not parent.has_column(fk):
            raise InvalidStateError(f"{parent.name} has no column {fk!r}")
        if not child.has_column(pk):
            raise InvalidStateError(f"{child.name} has no column {pk!r}")

        select_list = ", ".join(
            [
                self._labelled_columns(PARENT_ALIAS, parent),
                self._labelled_columns(CHILD_ALIAS, child),
            ]
        )
        return Statement(
            f"SELECT {select_list} "
            f"FROM {quote_identifier(parent.table)} {PARENT_ALIAS} "
            f"JOIN {quote_identifier(child.table)} {CHILD_ALIAS} "
            f"ON {PARENT_ALIAS}.{quote_identifier(fk)} = {CHILD_ALIAS}.{quote_identifier(pk)} "
            f"ORDER BY {PARENT_ALIAS}.{quote_identifier(ID_COLUMN)} ASC"
        )

    def search_filter(self, descriptor: EntityDescriptor, term: str) -> FilterClause:
        """OR-chain of case-insensitive substring matches over every persisted column."""
        columns = [binding.column for binding in descriptor.permitted_fields(descriptor.new_entity())]
        if not columns:
            raise DescriptorError(f"{descriptor.name} has no columns to search")
        pattern = f"%{escape_like(term)}%"
        conditions = [
            f"CAST({quote_identifier(column)} AS TEXT) {self.dialect.like_operator} "
            f"{self._ph} ESCAPE '\\'"
            for column in columns
        ]
        return FilterClause("WHERE " + " OR ".join(conditions), tuple(pattern for _ in columns))

    def search(self, descriptor: EntityDescriptor, pagination: Pagination, term: str) -> Statement:
        return self.select_page(descriptor, pagination, self.search_filter(descriptor, term))

    def foreign_key_filter(
        self, parent: EntityDescriptor, parent_id: Optional[int]
    ) -> FilterClause:
        """Filter a child table down to the rows referencing one parent."""
        return FilterClause(
            f"WHERE {quote_identifier(parent.foreign_key_column)} = {self._ph}",
            (parent_id,),
        )


__all__ = [
    "CHILD_ALIAS",
    "COUNT_LABEL",
    "PARENT_ALIAS",
    "FilterClause",
    "QueryBuilder",
    "Statement",
    "alias_prefix",
    "escape_like",
]
