"""Admission form rules, expressed as a Pydantic model."""

from datetime import date
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .schema import (
    BED_ALIASES,
    BED_OPTIONS,
    DIAGNOSIS_MAX_LENGTH,
    MAX_AGE_YEARS,
    MIN_AGE_YEARS,
)


class PatientValidationError(ValueError):
    """Raised when a patient record breaks an admission rule."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def calculate_age(birth_date: date, today: date | None = None) -> int:
    """Age in whole years on ``today``."""
    today = today or date.today()
    had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
    return today.year - birth_date.year - (0 if had_birthday else 1)


def normalize_antibiotics(values) -> list[str]:
    """Drop blanks and duplicates, keeping the first occurrence of each name."""
    result = []
    for value in values or []:
        name = str(value).strip()
        if name and name not in result:
            result.append(name)
    return result


class PatientForm(BaseModel):
    """A patient record as accepted at admission or edit."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Child's full name")
    birth_date: date = Field(..., description="Date of birth")
    gender: Literal["M", "F"] = Field(..., description="M or F")
    mother_name: str = Field(..., min_length=1, description="Mother's full name")
    bed: str = Field(..., description="Bed or procedure station")
    diagnosis: str = Field("", max_length=DIAGNOSIS_MAX_LENGTH)
    antibiotics: list[str] = Field(default_factory=list)
    entry_date: date = Field(..., description="Admission date")
    discharge_date: date | None = Field(None, description="Discharge date, empty while admitted")
    digitizer_id: str | None = None

    @field_validator("name", "mother_name", "diagnosis", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("discharge_date", mode="before")
    @classmethod
    def blank_discharge(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("antibiotics", mode="before")
    @classmethod
    def dedupe_antibiotics(cls, v):
        return normalize_antibiotics(v)

    @field_validator("bed", mode="before")
    @classmethod
    def bed_alias(cls, v):
        return BED_ALIASES.get(v.strip(), v) if isinstance(v, str) else v

    @field_validator("bed")
    @classmethod
    def known_bed(cls, v):
        if v not in BED_OPTIONS:
            raise ValueError(f"unknown bed '{v}'")
        return v

    @field_validator("birth_date")
    @classmethod
    def pediatric_age(cls, v, info: ValidationInfo):
        if v > date.today():
            raise ValueError("birth date is in the future")
        # Only checked at admission or when the birth date itself changes
        if info.context and not info.context.get("check_age", True):
            return v
        age = calculate_age(v)
        if not MIN_AGE_YEARS <= age <= MAX_AGE_YEARS:
            raise ValueError(f"ward admits patients aged {MIN_AGE_YEARS} to {MAX_AGE_YEARS} years")
        return v

    @model_validator(mode="after")
    def discharge_after_entry(self):
        if self.discharge_date is not None and self.discharge_date < self.entry_date:
            raise ValueError("discharge date cannot be earlier than the entry date")
        return self


def validate_patient(data: dict, check_age: bool = True) -> dict:
    """Validate a patient attribute dict and return it normalized (dates as ISO strings).

    With ``check_age=False`` the 0 to 12 age window is skipped, so records of
    children who have since turned 13 can still be edited and discharged.

    Raises:
        PatientValidationError: with one message per broken rule.
    """
    try:
        form = PatientForm.model_validate(data, context={"check_age": check_age})
    except ValidationError as e:
        raise PatientValidationError([_format_error(err) for err in e.errors()]) from None

    return {
        "name": form.name,
        "birth_date": form.birth_date.isoformat(),
        "gender": form.gender,
        "mother_name": form.mother_name,
        "bed": form.bed,
        "diagnosis": form.diagnosis,
        "antibiotics": form.antibiotics,
        "entry_date": form.entry_date.isoformat(),
        "discharge_date": form.discharge_date.isoformat() if form.discharge_date else None,
        "digitizer_id": form.digitizer_id,
    }


def _format_error(err: dict) -> str:
    message = err["msg"].removeprefix("Value error, ")
    location = ".".join(str(part) for part in err["loc"])
    return f"{location}: {message}" if location else message
