"""
Domain package for the clinic data-access layer.

Exports the entity/descriptor primitives, pagination state and the clinic
entities. Keep this package free of I/O.
"""

from clinicdb.domain.clinic import (
    APPOINTMENT,
    MEDICINE,
    PATIENT,
    Appointment,
    Medicine,
    Patient,
    clinic_descriptors,
)
from clinicdb.domain.entity import (
    ID_COLUMN,
    Entity,
    EntityDescriptor,
    FieldBinding,
    FieldKind,
    Relation,
    normalize_field_name,
)
from clinicdb.domain.pagination import DEFAULT_PAGE_SIZE, Pagination, SortOrder

__all__ = [
    # Primitives
    "ID_COLUMN",
    "Entity",
    "EntityDescriptor",
    "FieldBinding",
    "FieldKind",
    "Relation",
    "normalize_field_name",
    # Pagination
    "DEFAULT_PAGE_SIZE",
    "Pagination",
    "SortOrder",
    # Clinic entities
    "APPOINTMENT",
    "MEDICINE",
    "PATIENT",
    "Appointment",
    "Medicine",
    "Patient",
    "clinic_descriptors",
]
