"""Service layer for the patient registry."""

from patient_registry.services.export import PatientExporter, patients_csv
from patient_registry.services.patients import (
    PatientGateway,
    parse_patient_id,
    serialize_patient,
)

__all__ = [
    "PatientExporter",
    "PatientGateway",
    "parse_patient_id",
    "patients_csv",
    "serialize_patient",
]
