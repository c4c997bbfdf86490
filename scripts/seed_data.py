"""
Sample data seeding script for the clinic database.

Generates deterministic pseudo-random patients, medicines and appointments and
inserts them through the generic repositories, so the seeded rows go through
exactly the same SQL path as the application's own writes.
"""

from __future__ import annotations

import random
import sys
import time
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

import typer

from clinicdb.config import get_settings
from clinicdb.domain.clinic import APPOINTMENT, MEDICINE, PATIENT, Appointment, Medicine, Patient
from clinicdb.infrastructure.db_factory import get_sync_connection, open_connection
from clinicdb.persistence.dialect import POSTGRES
from clinicdb.persistence.factory import RepositoryFactory
from clinicdb.utils.logging import configure_logging

app = typer.Typer(help="Generate sample clinic data and insert it through the repositories.")

FIRST_NAMES = ["Ann", "Budi", "Chen", "Dewi", "Eko", "Fatima", "Gita", "Hiro", "Ines", "Joko"]
LAST_NAMES = ["Lee", "Santoso", "Wijaya", "Tan", "Kusuma", "Rahman", "Lim", "Sato", "Costa"]
MEDICINES = ["Paracetamol", "Amoxicillin", "Ibuprofen", "Cetirizine", "Omeprazole", "Salbutamol"]
DOSAGE_FORMS = ["tablet", "capsule", "syrup", "ointment", "inhaler"]


def _generate_patients(count: int, rng: random.Random) -> List[Patient]:
    patients = []
    for _ in range(count):
        birth = date(1950, 1, 1) + timedelta(days=rng.randint(0, 365 * 70))
        patients.append(
            Patient(
                full_name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
                birth_date=birth,
                phone=f"08{rng.randint(100_000_000, 999_999_999)}",
            )
        )
    return patients


def _generate_medicines(count: int, rng: random.Random) -> List[Medicine]:
    return [
        Medicine(
            name=f"{rng.choice(MEDICINES)} {rng.choice([100, 250, 500])}mg",
            dosageFormCategory=rng.choice(DOSAGE_FORMS),
            price=Decimal(rng.randint(500, 50_000)) / 100,
            stock=rng.randint(0, 500),
        )
        for _ in range(count)
    ]


def _generate_appointments(
    patient_ids: List[int], per_patient: int, rng: random.Random
) -> List[Appointment]:
    start = datetime(2024, 1, 1, 8, 0)
    appointments = []
    for patient_id in patient_ids:
        for _ in range(per_patient):
            appointments.append(
                Appointment(
                    patient_id=patient_id,
                    scheduled_at=start + timedelta(days=rng.randint(0, 364), minutes=15 * rng.randint(0, 36)),
                    fee=Decimal(rng.choice([150_000, 200_000, 250_000])),
                    notes=rng.choice(["check-up", "follow-up", "vaccination", None]),
                )
            )
    return appointments


def _seed(
    factory: RepositoryFactory,
    patients: int,
    medicines: int,
    appointments_per_patient: int,
    seed: int,
) -> Dict[str, int]:
    """Insert generated rows and return how many of each were created."""
    rng = random.Random(seed)

    patient_repo = factory.get(PATIENT)
    patient_ids = [patient_repo.create(p) for p in _generate_patients(patients, rng)]

    medicine_repo = factory.get(MEDICINE)
    for medicine in _generate_medicines(medicines, rng):
        medicine_repo.create(medicine)

    appointment_repo = factory.get(APPOINTMENT)
    appointments = _generate_appointments(patient_ids, appointments_per_patient, rng)
    for appointment in appointments:
        appointment_repo.create(appointment)

    return {
        "patients": len(patient_ids),
        "medicines": medicines,
        "appointments": len(appointments),
    }


@app.command()
def main(
    patients: int = typer.Option(50, "--patients", help="Number of patients to create."),
    medicines: int = typer.Option(20, "--medicines", help="Number of medicines to create."),
    appointments: int = typer.Option(
        2, "--appointments-per-patient", help="Appointments created for each patient."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Seed the configured database with sample clinic data.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level)
    start = time.perf_counter()
    if dsn:
        conn, dialect = get_sync_connection(dsn_override=dsn, settings=settings), POSTGRES
    else:
        conn, dialect = open_connection(settings)
    try:
        counts = _seed(RepositoryFactory(conn, dialect), patients, medicines, appointments, seed)
    finally:
        conn.close()

    duration = time.perf_counter() - start
    typer.echo(
        f"Seeded {counts['patients']} patients, {counts['medicines']} medicines and "
        f"{counts['appointments']} appointments in {duration:.2f}s."
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
