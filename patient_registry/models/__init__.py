"""SQLAlchemy models for the patient registry."""

from patient_registry.models.base import Base
from patient_registry.models.patient import Patient

__all__ = ["Base", "Patient"]
