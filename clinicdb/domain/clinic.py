"""
Clinic entities and their persistence descriptors.

Each entity mirrors one table in ``db/init.sql``. Fields default to None so the
row mapper can build an instance from its id and fill columns one by one.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import Field

from clinicdb.domain.entity import Entity, EntityDescriptor, FieldBinding, FieldKind, Relation


class Patient(Entity):
    """A registered patient."""

    full_name: Optional[str] = Field(None, description="Patient's full name.")
    birth_date: Optional[date] = Field(None, description="Date of birth.")
    phone: Optional[str] = Field(None, description="Contact phone number.")


class Medicine(Entity):
    """An item in the clinic's medicine stock."""

    name: Optional[str] = None
    dosageFormCategory: Optional[str] = Field(None, description="Tablet, syrup, ointment...")
    price: Optional[Decimal] = None
    stock: Optional[int] = None


class Appointment(Entity):
    """A scheduled visit. Hosts the joined ``Patient`` on ``patient``."""

    patient_id: Optional[int] = None
    scheduled_at: Optional[datetime] = None
    fee: Optional[Decimal] = None
    notes: Optional[str] = None

    patient: Optional[Patient] = None


PATIENT = EntityDescriptor(
    entity_type=Patient,
    table="patients",
    fields=(
        FieldBinding("full_name", FieldKind.TEXT),
        FieldBinding("birth_date", FieldKind.DATE),
        FieldBinding("phone", FieldKind.TEXT),
    ),
)

MEDICINE = EntityDescriptor(
    entity_type=Medicine,
    table="medicines",
    fields=(
        FieldBinding("name", FieldKind.TEXT),
        FieldBinding("dosageFormCategory", FieldKind.TEXT),
        FieldBinding("price", FieldKind.DECIMAL),
        FieldBinding("stock", FieldKind.INTEGER),
    ),
)

APPOINTMENT = EntityDescriptor(
    entity_type=Appointment,
    table="appointments",
    fields=(
        FieldBinding("patient_id", FieldKind.INTEGER),
        FieldBinding("scheduled_at", FieldKind.DATETIME),
        FieldBinding("fee", FieldKind.DECIMAL),
        FieldBinding("notes", FieldKind.TEXT),
    ),
    relations=(Relation(Patient, "patient"),),
)


def clinic_descriptors() -> Dict[str, EntityDescriptor]:
    """Registry of clinic descriptors keyed by lowercase entity name."""
    return {
        "appointment": APPOINTMENT,
        "medicine": MEDICINE,
        "patient": PATIENT,
    }


__all__ = [
    "APPOINTMENT",
    "MEDICINE",
    "PATIENT",
    "Appointment",
    "Medicine",
    "Patient",
    "clinic_descriptors",
]
