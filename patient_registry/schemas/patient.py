"""Patient record shape and validation rules.

Validation never raises: :func:`validate_patient` reports either the
validated record or every field that broke a rule.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

MAX_AGE = 101
CONTACTS_LENGTH = 10


def ensure_utc(value: datetime) -> datetime:
    """Coerce a datetime into UTC timezone-aware form; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PatientRecord(BaseModel):
    """Validated patient fields, keyed by their JSON names on input."""

    model_config = ConfigDict(extra="ignore")

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str | None = Field(default=None, alias="lastName")
    contacts: str | None = Field(
        default=None, min_length=CONTACTS_LENGTH, max_length=CONTACTS_LENGTH
    )
    age: float | None = Field(default=None, le=MAX_AGE)
    # legacy clients send "dateOfentry"; it is listed first so it wins when
    # merged over a stored record
    date_of_entry: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("dateOfentry", "dateOfEntry"),
    )
    medical_history: list[str] | None = Field(default=None, alias="medicalHistory")
    doctor_name: str | None = Field(default=None, alias="doctorName")

    @field_validator("date_of_entry")
    @classmethod
    def _normalize_date_of_entry(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


@dataclass(frozen=True)
class Violation:
    """A single broken rule, addressed by its JSON field path."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ValidationResult:
    record: PatientRecord | None = None
    violations: list[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None


def _field_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "body"


def validate_patient(data: Mapping[str, Any]) -> ValidationResult:
    """Check ``data`` against the patient rules.

    Every violated field is reported, not only the first one.
    """

    try:
        record = PatientRecord.model_validate(dict(data))
    except PydanticValidationError as exc:
        violations = [
            Violation(field=_field_path(error["loc"]), message=error["msg"])
            for error in exc.errors()
        ]
        return ValidationResult(violations=violations)
    return ValidationResult(record=record)


__all__ = [
    "CONTACTS_LENGTH",
    "MAX_AGE",
    "ensure_utc",
    "PatientRecord",
    "ValidationResult",
    "Violation",
    "validate_patient",
]
