"""Seed the record store with mock operators and pediatric admissions."""

from datetime import date, timedelta

from pediatric_ward.ward_records.database import DigitizerRepository, PatientRepository, get_store
from pediatric_ward.ward_records.database.digitizer_repository import Digitizer
from pediatric_ward.ward_records.database.store import RecordStore


MOCK_DIGITIZERS = [
    Digitizer(id="d-001", name="Carla Mendes", email="carla.mendes@upa.gov.br"),
    Digitizer(id="d-002", name="Rafael Souza", email="rafael.souza@upa.gov.br"),
]


def _days_ago(days: int) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


def _born(years: int, days: int = 0) -> str:
    """Birth date of a child who is ``years`` old plus ``days``."""
    today = date.today()
    try:
        birthday = today.replace(year=today.year - years)
    except ValueError:  # 29 February
        birthday = today.replace(year=today.year - years, day=28)
    return (birthday - timedelta(days=days)).isoformat()


def mock_patients() -> list[dict]:
    """Mock admissions with dates relative to today, so ages stay within the ward's range."""
    return [
        {
            "name": "Lucas Almeida",
            "birth_date": _born(4, 120),
            "gender": "M",
            "mother_name": "Juliana Almeida",
            "bed": "01",
            "diagnosis": "Community-acquired pneumonia",
            "antibiotics": ["Amoxicilina"],
            "entry_date": _days_ago(3),
            "digitizer_id": "d-001",
        },
        {
            "name": "Beatriz Costa",
            "birth_date": _born(7, 30),
            "gender": "F",
            "mother_name": "Fernanda Costa",
            "bed": "02",
            "diagnosis": "Acute otitis media",
            "antibiotics": ["Amoxicilina", "Cefalexina"],
            "entry_date": _days_ago(10),
            "discharge_date": _days_ago(6),
            "digitizer_id": "d-001",
        },
        {
            "name": "Miguel Ferreira",
            "birth_date": _born(1, 200),
            "gender": "M",
            "mother_name": "Patrícia Ferreira",
            "bed": "Nebulização",
            "diagnosis": "Bronchiolitis",
            "antibiotics": [],
            "entry_date": _days_ago(1),
            "digitizer_id": "d-002",
        },
        {
            "name": "Sofia Ribeiro",
            "birth_date": _born(10, 15),
            "gender": "F",
            "mother_name": "Ana Ribeiro",
            "bed": "Sutura",
            "diagnosis": "Forearm laceration",
            "antibiotics": ["Cefalexina"],
            "entry_date": _days_ago(2),
            "discharge_date": _days_ago(2),
            "digitizer_id": "d-002",
        },
        {
            "name": "Davi Oliveira",
            "birth_date": _born(6, 90),
            "gender": "M",
            "mother_name": "Camila Oliveira",
            "bed": "04",
            "diagnosis": "Bacterial tonsillitis",
            "antibiotics": ["Penicilina Benzatina"],
            "entry_date": _days_ago(0),
            "digitizer_id": "d-001",
        },
        {
            "name": "Helena Martins",
            "birth_date": _born(0, 150),
            "gender": "F",
            "mother_name": "Larissa Martins",
            "bed": "02.1",
            "diagnosis": "Urinary tract infection",
            "antibiotics": ["Ceftriaxona", "Gentamicina"],
            "entry_date": _days_ago(5),
            "digitizer_id": "d-002",
        },
    ]


def seed_database(store: RecordStore | None = None) -> dict:
    """Seed operators and patients, skipping any already present. Returns created counts."""
    store = store or get_store()
    digitizers = DigitizerRepository(store)
    patients = PatientRepository(store)
    created = {"digitizers": 0, "patients": 0}

    # find() also materializes the default administrator
    print("Creating mock digitizers...")
    digitizers.find()
    for digitizer in MOCK_DIGITIZERS:
        if digitizers.get_by_id(digitizer.id):
            print(f"  Skipping {digitizer.name} (already exists)")
        else:
            digitizers.save(digitizer)
            created["digitizers"] += 1
            print(f"  Created {digitizer.name}")

    print("Creating mock patients...")
    for patient in mock_patients():
        if patients.find(name=patient["name"], mother_name=patient["mother_name"]):
            print(f"  Skipping {patient['name']} (already exists)")
        else:
            patients.save(patient)
            created["patients"] += 1
            print(f"  Created {patient['name']} in bed {patient['bed']}")

    print("\nRecords seeded successfully!")
    print(f"  - {created['digitizers']} digitizers")
    print(f"  - {created['patients']} patients")
    return created


if __name__ == "__main__":
    seed_database()
