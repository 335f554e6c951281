from .connection import get_store
from .digitizer_repository import DigitizerRepository
from .patient_repository import PatientRepository
from .session import SessionState

__all__ = ["get_store", "DigitizerRepository", "PatientRepository", "SessionState"]
