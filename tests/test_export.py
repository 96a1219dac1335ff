import csv
import io

import pytest

from patient_registry.exceptions import ExportError
from patient_registry.services.export import EXPORT_COLUMNS, PatientExporter, patients_csv


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def test_csv_has_fixed_header_and_one_row_per_patient(gateway):
    gateway.create({"firstName": "Ann", "medicalHistory": ["asthma", "flu, seasonal"]})
    gateway.create({"firstName": "Bob", "age": 52, "doctorName": "Dr. Rao"})

    rows = _rows(patients_csv(gateway.get_all()))

    assert rows[0] == [
        "firstName",
        "lastName",
        "contacts",
        "age",
        "dateOfEntry",
        "medicalHistory",
        "doctorName",
    ]
    assert len(rows) == 3
    by_name = {row[0]: dict(zip(EXPORT_COLUMNS, row)) for row in rows[1:]}
    assert by_name["Ann"]["medicalHistory"] == "asthma; flu, seasonal"
    assert by_name["Ann"]["age"] == ""
    assert by_name["Bob"]["age"] == "52"
    assert by_name["Bob"]["doctorName"] == "Dr. Rao"


def test_csv_for_empty_store_is_header_only(gateway):
    assert _rows(patients_csv(gateway.get_all())) == [list(EXPORT_COLUMNS)]


def test_export_writes_file_and_overwrites(gateway, tmp_path):
    exporter = PatientExporter(tmp_path / "public")
    gateway.create({"firstName": "Ann"})

    path = exporter.export(gateway)
    assert path == tmp_path / "public" / "files" / "export" / "patients.csv"
    assert len(_rows(path.read_text(encoding="utf-8"))) == 2

    gateway.create({"firstName": "Bob"})
    exporter.export(gateway)
    assert len(_rows(path.read_text(encoding="utf-8"))) == 3


def test_export_reports_unwritable_location(gateway, tmp_path):
    blocker = tmp_path / "public"
    blocker.write_text("not a directory")

    with pytest.raises(ExportError):
        PatientExporter(blocker).export(gateway)
