"""Error taxonomy shared by the gateway, the exporter and the HTTP layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from patient_registry.schemas.patient import Violation


class PatientRegistryError(Exception):
    """Base class for errors raised by the patient registry."""


class ValidationError(PatientRegistryError):
    """A patient record broke one or more schema rules."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = violations
        fields = ", ".join(violation.field for violation in violations)
        super().__init__(f"invalid patient record: {fields}")


class NotFoundError(PatientRegistryError):
    """The requested patient id does not resolve to a record."""

    def __init__(self, patient_id: str) -> None:
        self.patient_id = patient_id
        super().__init__(f"patient {patient_id} not found")


class MissingCriterionError(PatientRegistryError):
    """A search was issued without ``firstName`` or ``doctorName``."""


class StoreError(PatientRegistryError):
    """The underlying database failed."""


class ExportError(PatientRegistryError):
    """Writing the CSV export to disk failed."""
