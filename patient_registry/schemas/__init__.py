"""Request-side schemas for the patient registry."""

from patient_registry.schemas.patient import (
    PatientRecord,
    ValidationResult,
    Violation,
    validate_patient,
)

__all__ = ["PatientRecord", "ValidationResult", "Violation", "validate_patient"]
