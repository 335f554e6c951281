"""Digitizer (ward operator) repository with seed and email lookup."""

import logging
import uuid
from dataclasses import asdict, dataclass

from .schema import DEFAULT_ADMIN, DIGITIZERS_KEY
from .store import Mutation, RecordStore, WriteResult

logger = logging.getLogger(__name__)


@dataclass
class Digitizer:
    id: str
    name: str
    email: str


class DigitizerRepository:
    """Repository for the operators who enter patient data."""

    def __init__(self, store: RecordStore):
        self.store = store
        self.last_write: WriteResult | None = None

    def find(self) -> list[Digitizer]:
        """All digitizers. An empty collection is seeded with the default administrator."""
        rows = self.store.load(DIGITIZERS_KEY)
        if not rows:
            seed = dict(DEFAULT_ADMIN)
            self.last_write = self.store.save(
                DIGITIZERS_KEY, [seed], Mutation("insertOne", seed["id"], seed)
            )
            logger.info("Seeded default administrator %s", seed["email"])
            rows = [seed]
        return [self._row_to_digitizer(row) for row in rows]

    def get_by_id(self, digitizer_id: str) -> Digitizer | None:
        """Get a digitizer by ID."""
        return next((d for d in self.find() if d.id == digitizer_id), None)

    def find_by_email(self, email: str) -> Digitizer | None:
        """Exact, case-sensitive email lookup (the login key)."""
        return next((d for d in self.find() if d.email == email), None)

    def save(self, digitizer: Digitizer) -> None:
        """Insert or replace a digitizer by ID."""
        rows = [asdict(d) for d in self.find()]
        document = asdict(digitizer)
        index = next((i for i, row in enumerate(rows) if row["id"] == digitizer.id), None)

        if index is not None:
            rows[index] = document
            mutation = Mutation("updateOne", digitizer.id, document)
        else:
            rows.append(document)
            mutation = Mutation("insertOne", digitizer.id, document)

        self.last_write = self.store.save(DIGITIZERS_KEY, rows, mutation)

    def register(self, name: str, email: str) -> Digitizer:
        """Create a new digitizer account.

        Raises:
            ValueError: if a field is missing or the email is already registered.
        """
        name, email = (name or "").strip(), (email or "").strip()
        if not name or not email:
            raise ValueError("Name and email are required")
        if self.find_by_email(email) is not None:
            raise ValueError(f"Email {email} is already registered")

        digitizer = Digitizer(id=str(uuid.uuid4()), name=name, email=email)
        self.save(digitizer)
        return digitizer

    def _row_to_digitizer(self, row: dict) -> Digitizer:
        """Convert a stored document to a Digitizer object."""
        return Digitizer(
            id=row["id"],
            name=row.get("name", ""),
            email=row.get("email", ""),
        )
