"""Persistence gateway for patient records."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from patient_registry.exceptions import MissingCriterionError, StoreError, ValidationError
from patient_registry.models import Patient
from patient_registry.schemas.patient import PatientRecord, ensure_utc, validate_patient

logger = logging.getLogger(__name__)


def parse_patient_id(value: str | uuid.UUID) -> uuid.UUID | None:
    """Return ``value`` as a UUID, or ``None`` when it is not a valid id."""

    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        return None


def serialize_patient(patient: Patient) -> dict[str, Any]:
    """Return a JSON-friendly representation of a patient.

    Dates are rendered in UTC.
    """

    age = patient.age
    if age is not None and float(age).is_integer():
        age = int(age)
    return {
        "id": str(patient.id),
        "firstName": patient.first_name,
        "lastName": patient.last_name,
        "contacts": patient.contacts,
        "age": age,
        "dateOfEntry": (
            ensure_utc(patient.date_of_entry).isoformat() if patient.date_of_entry else None
        ),
        "medicalHistory": list(patient.medical_history or []),
        "doctorName": patient.doctor_name,
    }


def _apply(patient: Patient, record: PatientRecord) -> None:
    patient.first_name = record.first_name
    patient.last_name = record.last_name
    patient.contacts = record.contacts
    patient.age = record.age
    patient.date_of_entry = record.date_of_entry
    patient.medical_history = list(record.medical_history or [])
    patient.doctor_name = record.doctor_name


class PatientGateway:
    """Create, read, update and delete patients over one database session.

    Writes are validated before anything reaches the session, so a rejected
    record leaves the store untouched. Database failures surface as
    :class:`StoreError`.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError("failed to commit patient changes") from exc

    def create(self, data: Mapping[str, Any]) -> Patient:
        result = validate_patient(data)
        if not result.ok:
            raise ValidationError(result.violations)

        patient = Patient(id=uuid.uuid4())
        _apply(patient, result.record)
        self.db.add(patient)
        self._commit()
        logger.info("patient created", extra={"patient_id": str(patient.id)})
        return patient

    def get_all(self) -> Sequence[Patient]:
        try:
            return self.db.execute(select(Patient)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError("failed to list patients") from exc

    def get_by_id(self, patient_id: str | uuid.UUID) -> Patient | None:
        key = parse_patient_id(patient_id)
        if key is None:
            return None
        try:
            return self.db.get(Patient, key)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load patient {patient_id}") from exc

    def find_by(
        self,
        *,
        first_name: str | None = None,
        doctor_name: str | None = None,
    ) -> Sequence[Patient]:
        """Exact-match search on one criterion; ``first_name`` takes precedence."""

        if first_name:
            criterion = Patient.first_name == first_name
        elif doctor_name:
            criterion = Patient.doctor_name == doctor_name
        else:
            raise MissingCriterionError("firstName or doctorName is required")

        try:
            return self.db.execute(select(Patient).where(criterion)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError("failed to search patients") from exc

    def update_by_id(
        self, patient_id: str | uuid.UUID, fields: Mapping[str, Any]
    ) -> Patient | None:
        """Merge ``fields`` over the stored record and persist the result.

        The merged record is validated as a whole; ``id`` cannot be changed.
        """

        patient = self.get_by_id(patient_id)
        if patient is None:
            return None

        current = serialize_patient(patient)
        current.pop("id")
        merged = {**current, **fields}
        result = validate_patient(merged)
        if not result.ok:
            raise ValidationError(result.violations)

        _apply(patient, result.record)
        self._commit()
        logger.info("patient updated", extra={"patient_id": str(patient.id)})
        return patient

    def delete_by_id(self, patient_id: str | uuid.UUID) -> Patient | None:
        patient = self.get_by_id(patient_id)
        if patient is None:
            return None

        try:
            self.db.delete(patient)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to delete patient {patient_id}") from exc
        self._commit()
        logger.info("patient deleted", extra={"patient_id": str(patient.id)})
        return patient
