"""Shared pytest fixtures."""

from datetime import date, timedelta

import pytest

from pediatric_ward.ward_records.database import DigitizerRepository, PatientRepository, SessionState
from pediatric_ward.ward_records.database.store import LocalStore, MemoryStore


def born_years_ago(years: int, extra_days: int = 0) -> str:
    """ISO birth date of a child aged ``years`` (plus ``extra_days``) today."""
    today = date.today()
    try:
        birthday = today.replace(year=today.year - years)
    except ValueError:  # 29 February
        birthday = today.replace(year=today.year - years, day=28)
    return (birthday - timedelta(days=extra_days)).isoformat()


@pytest.fixture
def store():
    """An empty in-memory record store."""
    return MemoryStore()


@pytest.fixture
def local_store(tmp_path):
    """A JSON-file store in a temporary directory."""
    return LocalStore(tmp_path / "data")


@pytest.fixture
def repo(store):
    return PatientRepository(store)


@pytest.fixture
def digitizer_repo(store):
    return DigitizerRepository(store)


@pytest.fixture
def session(store, digitizer_repo):
    return SessionState(store, digitizer_repo)


@pytest.fixture
def make_patient():
    """Factory for valid patient attribute dicts."""
    def _make(**overrides) -> dict:
        data = {
            "name": "Ana Souza",
            "birth_date": born_years_ago(5, 40),
            "gender": "F",
            "mother_name": "Maria Souza",
            "bed": "03",
            "diagnosis": "Pneumonia",
            "antibiotics": ["Ceftriaxona"],
            "entry_date": "2024-02-01",
            "digitizer_id": "1",
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def ward(repo, make_patient):
    """Three patients: P1 bed 01 admitted, P2 bed 02 discharged 2024-02-10, P3 bed 01 admitted."""
    p1 = repo.save(make_patient(
        name="Gabriel Rocha", mother_name="Luiza Rocha", bed="01",
        entry_date="2024-02-01", antibiotics=["Ceftriaxona"],
    ))
    p2 = repo.save(make_patient(
        name="Alice Nunes", mother_name="Renata Nunes", bed="02",
        entry_date="2024-02-05", discharge_date="2024-02-10", antibiotics=["Azitromicina"],
    ))
    p3 = repo.save(make_patient(
        name="Pedro Lima", mother_name="Joana Lima", bed="01",
        entry_date="2024-02-10", antibiotics=["Amoxicilina", "Gentamicina"],
    ))
    return {"P1": p1, "P2": p2, "P3": p3}
