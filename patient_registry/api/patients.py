"""Patient CRUD and export routes.

Each handler calls a single gateway operation. Failures are raised as
:mod:`patient_registry.exceptions` errors and turned into responses by the
handlers registered in :func:`patient_registry.main.create_app`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import FileResponse

from patient_registry.api.deps import get_exporter, get_gateway
from patient_registry.exceptions import NotFoundError
from patient_registry.services.export import EXPORT_FILENAME, PatientExporter
from patient_registry.services.patients import PatientGateway, serialize_patient

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: dict[str, Any] = Body(...),
    gateway: PatientGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Store a new patient and return it with its assigned id."""

    patient = gateway.create(payload)
    return serialize_patient(patient)


@router.get("/all")
def list_patients(gateway: PatientGateway = Depends(get_gateway)) -> list[dict[str, Any]]:
    """Return every stored patient."""

    return [serialize_patient(patient) for patient in gateway.get_all()]


@router.get("/search")
def search_patients(
    first_name: str | None = Query(default=None, alias="firstName"),
    doctor_name: str | None = Query(default=None, alias="doctorName"),
    gateway: PatientGateway = Depends(get_gateway),
) -> list[dict[str, Any]]:
    """Exact-match search by first name, or by doctor name when no first name is given."""

    patients = gateway.find_by(first_name=first_name, doctor_name=doctor_name)
    return [serialize_patient(patient) for patient in patients]


@router.get("/export/csv")
def export_patients_csv(
    gateway: PatientGateway = Depends(get_gateway),
    exporter: PatientExporter = Depends(get_exporter),
) -> FileResponse:
    """Write every patient to the CSV export file and send it as a download."""

    path = exporter.export(gateway)
    return FileResponse(path, media_type="text/csv", filename=EXPORT_FILENAME)


@router.get("/{patient_id}")
def get_patient(
    patient_id: str,
    gateway: PatientGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Fetch one patient by id."""

    patient = gateway.get_by_id(patient_id)
    if patient is None:
        raise NotFoundError(patient_id)
    return serialize_patient(patient)


@router.put("/{patient_id}")
def update_patient(
    patient_id: str,
    payload: dict[str, Any] = Body(...),
    gateway: PatientGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Apply a partial update; the merged record must still be valid."""

    patient = gateway.update_by_id(patient_id, payload)
    if patient is None:
        raise NotFoundError(patient_id)
    return serialize_patient(patient)


@router.delete("/{patient_id}")
def delete_patient(
    patient_id: str,
    gateway: PatientGateway = Depends(get_gateway),
) -> dict[str, str]:
    """Delete a patient and confirm with its first name."""

    patient = gateway.delete_by_id(patient_id)
    if patient is None:
        raise NotFoundError(patient_id)
    return {"message": f"Patient {patient.first_name} deleted"}
