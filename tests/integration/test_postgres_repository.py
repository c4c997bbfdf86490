"""
Integration tests for the generic repository on PostgreSQL.

These tests run against a real PostgreSQL instance and verify that:
1. Generated SQL is accepted by PostgreSQL (RETURNING, ILIKE, LIMIT/OFFSET)
2. Values round-trip with their column kinds (NUMERIC, DATE, TIMESTAMP)
3. Driver failures surface as domain errors and leave the connection usable

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import date, datetime
from decimal import Decimal

import pytest

from clinicdb.domain.clinic import MEDICINE, Appointment, Medicine, Patient
from clinicdb.domain.pagination import Pagination
from clinicdb.errors import QueryError
from clinicdb.infrastructure.db_factory import apply_statement_timeout
from clinicdb.persistence.dialect import POSTGRES
from clinicdb.persistence.repository import EntityRepository

PATIENT_COUNT = 12
PAGE_SIZE = 5

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


def test_patient_scenario(pg_patient_repo):
    new_id = pg_patient_repo.create(Patient(full_name="Ann Lee", birth_date=date(2000, 1, 1)))
    assert new_id == 1

    assert pg_patient_repo.get_by_id(1).full_name == "Ann Lee"
    assert pg_patient_repo.edit(Patient(id=1, full_name="Ann L.", birth_date=date(2000, 1, 1)))
    assert pg_patient_repo.get_by_id(1).full_name == "Ann L."
    assert pg_patient_repo.delete(1)
    assert pg_patient_repo.get_by_id(1) is None
    assert pg_patient_repo.delete(1) is False


def test_paging_covers_table(pg_patient_repo):
    for i in range(PATIENT_COUNT):
        pg_patient_repo.create(Patient(full_name=f"Patient {i:02d}"))

    pagination = Pagination(page_size=PAGE_SIZE)
    seen = [p.id for p in pg_patient_repo.get_page(pagination)]
    while pagination.next_page():
        seen.extend(p.id for p in pg_patient_repo.get_page(pagination))

    assert pagination.total_records == PATIENT_COUNT
    assert sorted(seen) == list(range(1, PATIENT_COUNT + 1))


def test_ilike_search(pg_patient_repo):
    pg_patient_repo.create(Patient(full_name="Ann Lee", phone="0811"))
    pg_patient_repo.create(Patient(full_name="Bob Stone"))
    pg_patient_repo.create(Patient(full_name="JOANNA Smith"))

    found = pg_patient_repo.search(Pagination(), "ann")

    assert [p.full_name for p in found] == ["Ann Lee", "JOANNA Smith"]
    assert pg_patient_repo.search(Pagination(), "%") == []


def test_medicine_round_trip(clean_clinic_tables):
    repo = EntityRepository(clean_clinic_tables, MEDICINE, POSTGRES)
    medicine = Medicine(name="Amoxicillin 500mg", dosageFormCategory="capsule", price=Decimal("45.50"), stock=12)

    new_id = repo.create(medicine)

    assert repo.get_by_id(new_id).model_dump() == medicine.model_dump()


def test_join_attaches_patient(pg_patient_repo, pg_appointment_repo):
    patient_id = pg_patient_repo.create(Patient(full_name="Ann Lee"))
    pg_appointment_repo.create(
        Appointment(patient_id=patient_id, scheduled_at=datetime(2024, 5, 1, 9, 0), fee=Decimal("150000.00"))
    )

    joined = pg_appointment_repo.join(pg_patient_repo, "patient_id")

    assert len(joined) == 1
    assert joined[0].patient.full_name == "Ann Lee"
    assert joined[0].fee == Decimal("150000.00")


def test_constraint_violation_leaves_connection_usable(pg_patient_repo, pg_appointment_repo):
    with pytest.raises(QueryError):
        pg_appointment_repo.create(Appointment(patient_id=999, scheduled_at=datetime(2024, 1, 1)))

    assert pg_patient_repo.count() == 0


def test_statement_timeout_applies(clean_clinic_tables):
    apply_statement_timeout(clean_clinic_tables, 1234)
    with clean_clinic_tables.cursor() as cur:
        cur.execute("SHOW statement_timeout")
        assert cur.fetchone()[0] == "1234ms"
    apply_statement_timeout(clean_clinic_tables, 0)
