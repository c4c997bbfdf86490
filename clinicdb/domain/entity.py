"""
Entity base model and declarative entity descriptors.

An ``EntityDescriptor`` is the static metadata the persistence layer needs to
turn an entity type into SQL and back: the table name, the ordered field
bindings (property name, column name, value kind, accessors) and the child
relations a parent entity can host after a join.

Descriptors are declared explicitly, once per entity type, at import time:

    PATIENT = EntityDescriptor(
        entity_type=Patient,
        table="patients",
        fields=(
            FieldBinding("full_name", FieldKind.TEXT),
            FieldBinding("birth_date", FieldKind.DATE),
        ),
    )
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, NamedTuple, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, PrivateAttr

from clinicdb.errors import DescriptorError, InvalidStateError

ID_COLUMN = "id"

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def normalize_field_name(name: str) -> str:
    """
    Convert a mixed-case property name to its snake_case column name.

    Example: ``dosageFormCategory`` -> ``dosage_form_category``.
    """
    return _CAMEL_BOUNDARY.sub(r"\1_\2", name).lower()


def is_identifier(name: str) -> bool:
    """Return True if ``name`` is a plain SQL identifier (optionally schema-qualified)."""
    return bool(name) and all(_IDENTIFIER.match(part) for part in name.split("."))


class FieldKind(str, Enum):
    """Scalar value kinds a field binding can carry."""

    INTEGER = "integer"
    TEXT = "text"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"


class Entity(BaseModel):
    """
    Base class for persisted records.

    ``id`` is None until the store assigns one; after that it cannot change.
    Subclasses may narrow the columns they manage by setting
    ``default_table_fields``, and single instances can narrow further with
    ``restrict_columns``.
    """

    id: Optional[int] = None

    default_table_fields: ClassVar[Optional[Tuple[str, ...]]] = None

    _table_fields: Optional[Tuple[str, ...]] = PrivateAttr(default=None)

    model_config = ConfigDict(extra="forbid")

    def __setattr__(self, name: str, value: Any) -> None:
        if name == ID_COLUMN and self.id is not None and value != self.id:
            raise InvalidStateError(
                f"{type(self).__name__} id {self.id} cannot be reassigned to {value!r}"
            )
        super().__setattr__(name, value)

    @property
    def table_field_names(self) -> Optional[Tuple[str, ...]]:
        """Columns this instance persists, or None for every declared column."""
        if self._table_fields is not None:
            return self._table_fields
        return type(self).default_table_fields

    def restrict_columns(self, *columns: str) -> "Entity":
        """Limit the columns this instance reads and writes."""
        self._table_fields = tuple(normalize_field_name(column) for column in columns)
        return self

    def copy_from(self, other: "Entity") -> "Entity":
        """Copy every non-id field (and the column restriction) from ``other``."""
        if type(other) is not type(self):
            raise InvalidStateError(
                f"Cannot copy {type(other).__name__} into {type(self).__name__}"
            )
        for name in type(self).model_fields:
            if name != ID_COLUMN:
                setattr(self, name, getattr(other, name))
        self._table_fields = other._table_fields
        return self


class BoundField(NamedTuple):
    """A field binding tied to one entity instance."""

    column: str
    kind: FieldKind
    read: Callable[[], Any]
    write: Callable[[Any], None]


@dataclass(frozen=True)
class FieldBinding:
    """
    Declares one persisted property.

    ``name`` is the property name as the entity exposes it; the column name is
    always its normalized form. Custom ``getter``/``setter`` callables can
    replace plain attribute access.
    """

    name: str
    kind: FieldKind
    getter: Optional[Callable[[Any], Any]] = None
    setter: Optional[Callable[[Any, Any], None]] = None

    @property
    def column(self) -> str:
        return normalize_field_name(self.name)

    def get(self, entity: Entity) -> Any:
        if self.getter is not None:
            return self.getter(entity)
        return getattr(entity, self.name)

    def set(self, entity: Entity, value: Any) -> None:
        if self.setter is not None:
            self.setter(entity, value)
        else:
            setattr(entity, self.name, value)

    def bind(self, entity: Entity) -> BoundField:
        return BoundField(
            column=self.column,
            kind=self.kind,
            read=lambda: self.get(entity),
            write=lambda value: self.set(entity, value),
        )


@dataclass(frozen=True)
class Relation:
    """Declares that a parent entity hosts a ``child_type`` entity on ``attribute``."""

    child_type: Type[Entity]
    attribute: str

    def attach(self, parent: Entity, child: Entity) -> None:
        setattr(parent, self.attribute, child)


@dataclass(frozen=True)
class EntityDescriptor:
    """Static, read-only persistence metadata for one entity type."""

    entity_type: Type[Entity]
    table: str
    fields: Tuple[FieldBinding, ...]
    relations: Tuple[Relation, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "relations", tuple(self.relations))
        self._validate()

    def _validate(self) -> None:
        if not (isinstance(self.entity_type, type) and issubclass(self.entity_type, Entity)):
            raise DescriptorError(f"{self.entity_type!r} is not an Entity subclass")
        if not is_identifier(self.table):
            raise DescriptorError(f"Invalid table name {self.table!r}")

        model_fields = self.entity_type.model_fields
        seen: set[str] = set()
        for binding in self.fields:
            if not isinstance(binding.kind, FieldKind):
                raise DescriptorError(
                    f"{self.name}.{binding.name}: unsupported kind {binding.kind!r}"
                )
            if not _IDENTIFIER.match(binding.name):
                raise DescriptorError(f"{self.name}: invalid property name {binding.name!r}")
            column = binding.column
            if column == ID_COLUMN:
                raise DescriptorError(f"{self.name}: 'id' is managed implicitly")
            if column in seen:
                raise DescriptorError(f"{self.name}: duplicate column {column!r}")
            seen.add(column)

            uses_attribute = binding.getter is None or binding.setter is None
            if uses_attribute:
                if binding.name not in model_fields:
                    raise DescriptorError(
                        f"{self.name} has no attribute {binding.name!r}"
                    )
                if model_fields[binding.name].is_required():
                    raise DescriptorError(
                        f"{self.name}.{binding.name} must have a default value"
                    )

        children: set[type] = set()
        for relation in self.relations:
            if not issubclass(relation.child_type, Entity):
                raise DescriptorError(f"{relation.child_type!r} is not an Entity subclass")
            if relation.attribute not in model_fields:
                raise DescriptorError(
                    f"{self.name} has no relation attribute {relation.attribute!r}"
                )
            if relation.child_type in children:
                raise DescriptorError(
                    f"{self.name}: duplicate relation for {relation.child_type.__name__}"
                )
            children.add(relation.child_type)

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(binding.column for binding in self.fields)

    @property
    def foreign_key_column(self) -> str:
        """Column a child table uses to reference this entity, e.g. ``patient_id``."""
        return f"{normalize_field_name(self.name)}_{ID_COLUMN}"

    def has_column(self, column: str) -> bool:
        return column == ID_COLUMN or column in self.columns

    def new_entity(self, entity_id: Optional[int] = None) -> Entity:
        return self.entity_type(id=entity_id)

    def permitted_fields(self, entity: Entity) -> Tuple[FieldBinding, ...]:
        """
        Declared fields narrowed by the entity's own column restriction.

        Raises
        ------
        InvalidStateError
            If the entity is of another type or restricts to unknown columns.
        """
        if not isinstance(entity, self.entity_type):
            raise InvalidStateError(
                f"Expected {self.name}, got {type(entity).__name__}"
            )
        subset = entity.table_field_names
        if subset is None:
            return self.fields
        unknown = set(subset) - set(self.columns)
        if unknown:
            raise InvalidStateError(
                f"{self.name} restricts to unknown columns: {', '.join(sorted(unknown))}"
            )
        return tuple(binding for binding in self.fields if binding.column in subset)

    def bind(self, entity: Entity) -> List[BoundField]:
        return [binding.bind(entity) for binding in self.permitted_fields(entity)]

    def values(self, entity: Entity) -> Dict[str, Any]:
        """Ordered column -> value mapping for the entity's permitted columns."""
        return {bound.column: bound.read() for bound in self.bind(entity)}

    def relation_for(self, child_type: Type[Entity]) -> Optional[Relation]:
        for relation in self.relations:
            if relation.child_type is child_type:
                return relation
        return None


__all__ = [
    "ID_COLUMN",
    "BoundField",
    "Entity",
    "EntityDescriptor",
    "FieldBinding",
    "FieldKind",
    "Relation",
    "is_identifier",
    "normalize_field_name",
]
