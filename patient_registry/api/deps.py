"""Request-scoped dependencies resolved from the application context."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from patient_registry.db.session import get_db
from patient_registry.services.export import PatientExporter
from patient_registry.services.patients import PatientGateway


def get_gateway(db: Session = Depends(get_db)) -> PatientGateway:
    return PatientGateway(db)


def get_exporter(request: Request) -> PatientExporter:
    return request.app.state.context.exporter
