from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path

import pytest
from typer.testing import CliRunner

from clinicdb.config import get_settings
from clinicdb.domain.clinic import APPOINTMENT, PATIENT, Appointment, Patient
from clinicdb.infrastructure.db_factory import get_sqlite_connection
from clinicdb.main import app
from clinicdb.persistence.dialect import SQLITE
from clinicdb.persistence.repository import EntityRepository

SCHEMA = Path(__file__).parents[2] / "db" / "init_sqlite.sql"
PATIENT_NAMES = ["Ann Lee", "Bob Stone", "Joanna Smith"]

runner = CliRunner()


@pytest.fixture
def sqlite_db(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "clinic.sqlite"
    conn = get_sqlite_connection(str(path))
    try:
        conn.executescript(SCHEMA.read_text(encoding="utf-8"))
        patients = EntityRepository(conn, PATIENT, SQLITE)
        ids = [patients.create(Patient(full_name=name, birth_date=date(1990, 1, 1))) for name in PATIENT_NAMES]
        EntityRepository(conn, APPOINTMENT, SQLITE).create(
            Appointment(patient_id=ids[0], scheduled_at=datetime(2024, 5, 1, 9, 0))
        )
    finally:
        conn.close()

    monkeypatch.setenv("DB_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_PATH", str(path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    return path


def test_info_reports_backend(sqlite_db: Path):
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert f"DB=sqlite:{sqlite_db}" in result.stdout
    assert "page_size=10" in result.stdout


def test_entities_lists_registry(sqlite_db: Path):
    result = runner.invoke(app, ["entities"])
    assert result.exit_code == 0
    assert "appointment, medicine, patient" in result.stdout


def test_list_pages_and_sorts(sqlite_db: Path):
    result = runner.invoke(app, ["list", "patient", "--size", "2", "--sort", "fullName", "--order", "desc"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["total_records"] == 3
    assert payload["page_count"] == 2
    assert [item["full_name"] for item in payload["items"]] == ["Joanna Smith", "Bob Stone"]


def test_list_rejects_bad_sort_order(sqlite_db: Path):
    result = runner.invoke(app, ["list", "patient", "--sort", "full_name", "--order", "up"])
    assert result.exit_code == 1


def test_list_unknown_entity(sqlite_db: Path):
    result = runner.invoke(app, ["list", "doctor"])
    assert result.exit_code == 1
    assert "Unknown entity" in result.output


def test_search(sqlite_db: Path):
    result = runner.invoke(app, ["search", "patient", "ann"])
    assert result.exit_code == 0, result.output
    names = [item["full_name"] for item in json.loads(result.stdout)["items"]]
    assert names == ["Ann Lee", "Joanna Smith"]


def test_show_and_missing(sqlite_db: Path):
    found = runner.invoke(app, ["show", "patient", "2"])
    assert found.exit_code == 0
    assert json.loads(found.stdout)["full_name"] == "Bob Stone"

    missing = runner.invoke(app, ["show", "patient", "99"])
    assert missing.exit_code == 1
    assert "not found" in missing.output


def test_join(sqlite_db: Path):
    result = runner.invoke(app, ["join", "appointment", "patient", "patient_id"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert len(rows) == 1
    assert rows[0]["patient"]["full_name"] == "Ann Lee"
    assert rows[0]["scheduled_at"] == "2024-05-01T09:00:00"


def test_list_as_table(sqlite_db: Path):
    result = runner.invoke(app, ["list", "patient", "--table"])
    assert result.exit_code == 0, result.output
    assert "Ann Lee" in result.stdout
    assert "Page 1 of 1" in result.stdout
