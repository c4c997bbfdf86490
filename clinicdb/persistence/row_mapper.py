"""
Result row to entity mapping.

Rows are plain mappings of column label to value. Each ``FieldKind`` has exactly
one accepted Python type; values of any other type are rejected instead of
being widened or narrowed.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping

from clinicdb.domain.entity import ID_COLUMN, Entity, EntityDescriptor, FieldKind
from clinicdb.errors import MappingError


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError
    return value


def _text(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError
    return value


def _decimal(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        raise TypeError
    return value


def _date(value: Any) -> date:
    if isinstance(value, datetime) or not isinstance(value, date):
        raise TypeError
    return value


def _datetime(value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise TypeError
    return value


_COERCIONS: Dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.INTEGER: _integer,
    FieldKind.TEXT: _text,
    FieldKind.DECIMAL: _decimal,
    FieldKind.DATE: _date,
    FieldKind.DATETIME: _datetime,
}


def coerce(kind: FieldKind, value: Any) -> Any:
    """
    Check ``value`` against ``kind``; None passes through for every kind.

    Raises
    ------
    MappingError
        If the value's type does not belong to ``kind``.
    """
    if value is None:
        return None
    try:
        return _COERCIONS[kind](value)
    except TypeError:
        raise MappingError(
            f"Expected {kind.value} value, got {type(value).__name__}: {value!r}"
        ) from None


class RowMapper:
    """Builds populated entities from result rows."""

    def map(
        self,
        row: Mapping[str, Any],
        descriptor: EntityDescriptor,
        alias_prefix: str = "",
    ) -> Entity:
        id_label = alias_prefix + ID_COLUMN
        if id_label not in row:
            raise MappingError(f"{descriptor.name}: row has no {id_label!r} column")
        entity = descriptor.new_entity(coerce(FieldKind.INTEGER, row[id_label]))

        for bound in descriptor.bind(entity):
            label = alias_prefix + bound.column
            if label not in row:
                raise MappingError(f"{descriptor.name}: row has no {label!r} column")
            try:
                value = coerce(bound.kind, row[label])
            except MappingError as exc:
                raise MappingError(f"{descriptor.name}.{bound.column}: {exc}") from None
            bound.write(value)
        return entity


__all__ = ["RowMapper", "coerce"]
