"""Patient repository with CRUD, equality queries and discharge."""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime

from .schema import BED_ALIASES, PATIENT_DOCUMENT_KEYS, PATIENTS_KEY
from .store import Mutation, RecordStore, WriteResult
from .validation import validate_patient

logger = logging.getLogger(__name__)


@dataclass
class Patient:
    id: str | None
    name: str
    birth_date: str
    gender: str
    mother_name: str
    bed: str
    diagnosis: str = ""
    antibiotics: list[str] = field(default_factory=list)
    entry_date: str | None = None
    discharge_date: str | None = None
    digitizer_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_admitted(self) -> bool:
        return self.discharge_date is None


class PatientRepository:
    """Repository for patient records kept as one collection in a record store.

    Every mutation rewrites the whole collection (read-modify-write).
    """

    # Fields that can be supplied by callers
    PATIENT_FIELDS = [
        "name", "birth_date", "gender", "mother_name", "bed", "diagnosis",
        "antibiotics", "entry_date", "discharge_date", "digitizer_id",
    ]

    def __init__(self, store: RecordStore):
        self.store = store
        self.last_write: WriteResult | None = None

    def find(self, **criteria) -> list[Patient]:
        """Find patients whose fields equal every given value, newest first."""
        unknown = set(criteria) - set(PATIENT_DOCUMENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown patient field(s): {', '.join(sorted(unknown))}")

        patients = [self._row_to_patient(row) for row in self.store.load(PATIENTS_KEY)]
        matches = [
            p for p in patients
            if all(getattr(p, name) == value for name, value in criteria.items())
        ]
        return sorted(matches, key=lambda p: p.created_at or "", reverse=True)

    def find_one(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        for row in self.store.load(PATIENTS_KEY):
            if row.get("id") == patient_id:
                return self._row_to_patient(row)
        return None

    def search(self, term: str) -> list[Patient]:
        """Patients whose name or diagnosis contains ``term``, ignoring case."""
        needle = term.strip().casefold()
        patients = self.find()
        if not needle:
            return patients
        return [
            p for p in patients
            if needle in p.name.casefold() or needle in (p.diagnosis or "").casefold()
        ]

    def save(self, patient: Patient | dict) -> Patient:
        """Create a patient, or merge the given fields onto an existing one.

        Raises:
            PatientValidationError: if the resulting record breaks an admission rule.
        """
        data = asdict(patient) if isinstance(patient, Patient) else dict(patient)
        rows = self.store.load(PATIENTS_KEY)
        now = datetime.now().isoformat()

        patient_id = data.get("id")
        index = next((i for i, row in enumerate(rows) if row.get("id") == patient_id), None)

        if patient_id and index is not None:
            current = asdict(self._row_to_patient(rows[index]))
            merged = {name: current[name] for name in self.PATIENT_FIELDS}
            merged.update({name: value for name, value in data.items() if name in self.PATIENT_FIELDS})

            # Age window applies at admission and to birth date corrections
            birth_changed = str(merged["birth_date"]) != str(current["birth_date"])
            record = validate_patient(merged, check_age=birth_changed)
            record.update(id=patient_id, created_at=current["created_at"], updated_at=now)
            rows[index] = self._patient_to_row(record)
            mutation = Mutation("updateOne", patient_id, rows[index])
        else:
            fields = {name: data.get(name) for name in self.PATIENT_FIELDS}
            fields["entry_date"] = fields["entry_date"] or date.today().isoformat()
            fields["antibiotics"] = fields["antibiotics"] or []

            record = validate_patient(fields)
            record.update(id=str(uuid.uuid4()), created_at=now, updated_at=now)
            rows.append(self._patient_to_row(record))
            mutation = Mutation("insertOne", record["id"], rows[-1])

        self.last_write = self.store.save(PATIENTS_KEY, rows, mutation)
        logger.info("Saved patient %s (%s)", record["id"], mutation.verb)
        return Patient(**record)

    def discharge(self, patient_id: str, discharge_date: str | None = None) -> Patient | None:
        """Record a discharge; defaults to today. Returns None for an unknown ID."""
        if self.find_one(patient_id) is None:
            return None
        return self.save({
            "id": patient_id,
            "discharge_date": discharge_date or date.today().isoformat(),
        })

    def delete_one(self, patient_id: str) -> None:
        """Delete a patient. Unknown IDs are ignored."""
        rows = self.store.load(PATIENTS_KEY)
        remaining = [row for row in rows if row.get("id") != patient_id]
        if len(remaining) == len(rows):
            return

        self.last_write = self.store.save(
            PATIENTS_KEY, remaining, Mutation("deleteOne", patient_id)
        )
        logger.info("Deleted patient %s", patient_id)

    # Private helpers

    def _row_to_patient(self, row: dict) -> Patient:
        """Convert a stored document to a Patient object."""
        return Patient(
            id=row.get("id"),
            name=row.get("name", ""),
            birth_date=row.get("birthDate"),
            gender=row.get("gender"),
            mother_name=row.get("motherName", ""),
            bed=BED_ALIASES.get(row.get("bed"), row.get("bed")),
            diagnosis=row.get("diagnosis") or "",
            antibiotics=list(row.get("antibiotics") or []),
            entry_date=row.get("entryDate"),
            discharge_date=row.get("dischargeDate") or None,
            digitizer_id=row.get("digitizerId"),
            created_at=row.get("createdAt"),
            updated_at=row.get("updatedAt"),
        )

    def _patient_to_row(self, record: dict) -> dict:
        """Convert patient attributes to the stored camelCase document."""
        return {key: record.get(name) for name, key in PATIENT_DOCUMENT_KEYS.items()}
