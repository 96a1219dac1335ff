"""CSV export of the full patient set."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from pathlib import Path

from patient_registry.exceptions import ExportError
from patient_registry.models import Patient
from patient_registry.services.patients import PatientGateway, serialize_patient

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "firstName",
    "lastName",
    "contacts",
    "age",
    "dateOfEntry",
    "medicalHistory",
    "doctorName",
)
HISTORY_SEPARATOR = "; "
EXPORT_FILENAME = "patients.csv"


def patients_csv(patients: Iterable[Patient]) -> str:
    """Render ``patients`` as CSV text with a header row.

    Missing values become empty cells and the medical history collapses into
    a single ``"; "``-separated cell.
    """

    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=EXPORT_COLUMNS, extrasaction="ignore", lineterminator="\n"
    )
    writer.writeheader()
    for patient in patients:
        row = serialize_patient(patient)
        row["medicalHistory"] = HISTORY_SEPARATOR.join(row["medicalHistory"])
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue()


class PatientExporter:
    """Write the patient CSV to a fixed location under the public directory.

    Every export overwrites the previous file. Concurrent exports are not
    serialized; the last writer wins.
    """

    def __init__(self, public_dir: str | Path) -> None:
        self.export_path = Path(public_dir) / "files" / "export" / EXPORT_FILENAME

    def export(self, gateway: PatientGateway) -> Path:
        patients = gateway.get_all()
        content = patients_csv(patients)
        try:
            self.export_path.parent.mkdir(parents=True, exist_ok=True)
            self.export_path.write_text(content, encoding="utf-8", newline="")
        except OSError as exc:
            raise ExportError(f"could not write {self.export_path}") from exc

        logger.info(
            "patients exported",
            extra={"rows": len(patients), "path": str(self.export_path)},
        )
        return self.export_path
