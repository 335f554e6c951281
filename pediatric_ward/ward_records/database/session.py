"""Current-operator pointer for this terminal. No credentials, no expiry."""

from dataclasses import asdict

from .digitizer_repository import Digitizer, DigitizerRepository
from .schema import SESSION_KEY
from .store import RecordStore


class SessionState:
    def __init__(self, store: RecordStore, digitizers: DigitizerRepository | None = None):
        self.store = store
        self.digitizers = digitizers or DigitizerRepository(store)

    def get_current_user(self) -> Digitizer | None:
        data = self.store.read(SESSION_KEY)
        if not data:
            return None
        return Digitizer(id=data["id"], name=data.get("name", ""), email=data.get("email", ""))

    def set_current_user(self, user: Digitizer | None) -> None:
        """Point the session at ``user``; None clears it."""
        self.store.write(SESSION_KEY, asdict(user) if user else None)

    def login(self, email: str) -> Digitizer | None:
        """Start a session for the digitizer registered under ``email``."""
        user = self.digitizers.find_by_email(email.strip())
        if user is not None:
            self.set_current_user(user)
        return user

    def logout(self) -> None:
        self.set_current_user(None)
