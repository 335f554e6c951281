"""
Pediatric Ward Record Layout
Collection keys, remote collection names and the fixed ward vocabularies.
"""

# =============================================================================
# 1. COLLECTIONS - local storage keys and their remote counterparts
# =============================================================================
PATIENTS_KEY = "upa_patients"
DIGITIZERS_KEY = "upa_digitizers"
SESSION_KEY = "upa_session"
# Remote writes that failed, replayed in order once the remote answers again
PENDING_KEY = "upa_pending"

REMOTE_COLLECTIONS = {
    PATIENTS_KEY: "patients",
    DIGITIZERS_KEY: "digitizers",
}


# =============================================================================
# 2. PATIENT DOCUMENT FIELDS - attribute name -> persisted key
# =============================================================================
PATIENT_DOCUMENT_KEYS = {
    "id": "id",
    "name": "name",
    "birth_date": "birthDate",
    "gender": "gender",
    "mother_name": "motherName",
    "bed": "bed",
    "diagnosis": "diagnosis",
    "antibiotics": "antibiotics",
    "entry_date": "entryDate",
    "discharge_date": "dischargeDate",
    "digitizer_id": "digitizerId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


# =============================================================================
# 3. WARD VOCABULARIES
# =============================================================================
# Numbered beds plus procedure stations that are booked like beds
BED_OPTIONS = [
    "01", "02", "03", "04", "05", "06",
    "02.1", "02.2", "ECG", "Sutura", "Nebulização",
]

# Spellings found in records written by earlier versions of the ward app
BED_ALIASES = {"Nebolização": "Nebulização"}

ANTIBIOTIC_OPTIONS = [
    "Amoxicilina",
    "Ceftriaxona",
    "Azitromicina",
    "Claritromicina",
    "Penicilina Benzatina",
    "Ampicilina",
    "Gentamicina",
    "Cefalexina",
]

GENDERS = {"M": "Male", "F": "Female"}

MIN_AGE_YEARS = 0
MAX_AGE_YEARS = 12
DIAGNOSIS_MAX_LENGTH = 250


# =============================================================================
# 4. SEED - operator materialized when the digitizer collection is empty
# =============================================================================
DEFAULT_ADMIN = {"id": "1", "name": "Admin Central", "email": "admin@upa.gov.br"}
