import csv
import io
import logging
import uuid

from fastapi.testclient import TestClient

from patient_registry.exceptions import StoreError
from patient_registry.main import create_app
from patient_registry.services.export import EXPORT_COLUMNS
from patient_registry.services.patients import PatientGateway


def _create(client, **fields):
    response = client.post("/api/patients", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_then_search_by_first_name(client):
    response = client.post(
        "/api/patients", json={"firstName": "Ann", "contacts": "1234567890"}
    )

    assert response.status_code == 201
    created = response.json()
    assert created["firstName"] == "Ann"
    assert created["contacts"] == "1234567890"
    assert uuid.UUID(created["id"])

    response = client.get("/api/patients/search", params={"firstName": "Ann"})
    assert response.status_code == 200
    assert response.json() == [created]


def test_create_rejects_invalid_records(client):
    response = client.post("/api/patients", json={"age": 102, "contacts": "12345"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Validation failed"
    assert {v["field"] for v in body["violations"]} == {"firstName", "age", "contacts"}
    assert client.get("/api/patients/all").json() == []


def test_create_accepts_age_limit(client):
    created = _create(client, firstName="Ann", age=101)
    assert created["age"] == 101


def test_create_rejects_non_object_body(client):
    response = client.post("/api/patients", json=["Ann"])

    assert response.status_code == 422
    assert response.json()["error"] == "Validation failed"


def test_list_all(client):
    _create(client, firstName="Ann")
    _create(client, firstName="Bob")

    response = client.get("/api/patients/all")

    assert response.status_code == 200
    assert sorted(p["firstName"] for p in response.json()) == ["Ann", "Bob"]


def test_search_by_doctor_name(client):
    _create(client, firstName="Ann", doctorName="Dr. Rao")
    _create(client, firstName="Bob", doctorName="Dr. Kim")

    response = client.get("/api/patients/search", params={"doctorName": "Dr. Kim"})

    assert [p["firstName"] for p in response.json()] == ["Bob"]


def test_search_without_criterion_is_bad_request(client):
    response = client.get("/api/patients/search")

    assert response.status_code == 400
    assert "firstName" in response.json()["error"]


def test_get_by_id_round_trip(client):
    created = _create(
        client,
        firstName="Ann",
        lastName="Lee",
        age=40,
        dateOfEntry="2024-03-01T09:30:00",
        medicalHistory=["asthma"],
        doctorName="Dr. Rao",
    )

    response = client.get(f"/api/patients/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


def test_update_patient(client):
    created = _create(client, firstName="Ann", age=30)

    response = client.put(f"/api/patients/{created['id']}", json={"age": 31, "doctorName": "Dr. Rao"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]
    assert body["firstName"] == "Ann"
    assert body["age"] == 31
    assert body["doctorName"] == "Dr. Rao"


def test_update_with_invalid_fields_keeps_record(client):
    created = _create(client, firstName="Ann", contacts="1234567890")

    response = client.put(f"/api/patients/{created['id']}", json={"contacts": "1"})

    assert response.status_code == 422
    assert client.get(f"/api/patients/{created['id']}").json()["contacts"] == "1234567890"


def test_update_unknown_id_is_not_found(client):
    for patient_id in ("bad-id", str(uuid.uuid4())):
        response = client.put(f"/api/patients/{patient_id}", json={"firstName": "Ann"})
        assert response.status_code == 404
        assert response.json() == {"error": "Patient not found"}


def test_delete_patient(client):
    created = _create(client, firstName="Ann", contacts="1234567890")

    response = client.delete(f"/api/patients/{created['id']}")

    assert response.status_code == 200
    assert response.json() == {"message": "Patient Ann deleted"}
    assert client.get(f"/api/patients/{created['id']}").status_code == 404
    assert client.get("/api/patients/search", params={"firstName": "Ann"}).json() == []


def test_delete_unknown_id_is_not_found(client):
    response = client.delete(f"/api/patients/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "Patient not found"}


def test_export_csv_download(client, settings):
    _create(client, firstName="Ann", medicalHistory=["asthma", "flu"])
    _create(client, firstName="Bob")

    response = client.get("/api/patients/export/csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="patients.csv"' in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == list(EXPORT_COLUMNS)
    assert len(rows) == 3

    export_file = f"{settings.public_dir}/files/export/patients.csv"
    with open(export_file, encoding="utf-8") as handle:
        assert handle.read() == response.text


def test_store_failures_return_generic_error(client, monkeypatch):
    def broken_get_all(self):
        raise StoreError("connection refused by db-host:5432")

    monkeypatch.setattr(PatientGateway, "get_all", broken_get_all)

    for path in ("/api/patients/all", "/api/patients/export/csv"):
        response = client.get(path)
        assert response.status_code == 500
        assert response.json() == {"error": "Server error"}


def test_aware_date_of_entry_round_trips(client):
    created = _create(client, firstName="Ann", dateOfEntry="2024-03-01T09:30:00Z")
    assert created["dateOfEntry"] == "2024-03-01T09:30:00+00:00"

    fetched = client.get(f"/api/patients/{created['id']}").json()
    assert fetched == created


def test_offset_date_of_entry_is_stored_in_utc(client):
    created = _create(client, firstName="Ann", dateOfEntry="2024-03-01T11:30:00+02:00")

    fetched = client.get(f"/api/patients/{created['id']}").json()
    assert fetched["dateOfEntry"] == "2024-03-01T09:30:00+00:00"
    assert fetched == created


def test_null_medical_history_on_create_and_update(client):
    created = _create(client, firstName="Ann", medicalHistory=None)
    assert created["medicalHistory"] == []

    response = client.put(
        f"/api/patients/{created['id']}", json={"medicalHistory": ["asthma"]}
    )
    assert response.json()["medicalHistory"] == ["asthma"]

    response = client.put(f"/api/patients/{created['id']}", json={"medicalHistory": None})
    assert response.status_code == 200
    assert response.json()["medicalHistory"] == []


def test_delete_malformed_id_is_not_found(client):
    response = client.delete("/api/patients/bad-id")

    assert response.status_code == 404
    assert response.json() == {"error": "Patient not found"}


def test_export_write_failure_returns_generic_error(client, settings):
    _create(client, firstName="Ann")
    with open(settings.public_dir, "w", encoding="utf-8") as handle:
        handle.write("not a directory")

    response = client.get("/api/patients/export/csv")

    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}


def test_write_failures_on_update_and_delete_return_generic_error(client, monkeypatch):
    created = _create(client, firstName="Ann")

    def broken_commit(self):
        raise StoreError("could not commit")

    monkeypatch.setattr(PatientGateway, "_commit", broken_commit)

    response = client.put(f"/api/patients/{created['id']}", json={"age": 40})
    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}

    response = client.delete(f"/api/patients/{created['id']}")
    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}


def test_unexpected_errors_return_generic_error_and_log_once(settings, monkeypatch, caplog):
    def exploding_get_all(self):
        raise RuntimeError("boom")

    monkeypatch.setattr(PatientGateway, "get_all", exploding_get_all)

    with TestClient(create_app(settings), raise_server_exceptions=False) as client:
        with caplog.at_level(logging.ERROR):
            response = client.get("/api/patients/all")

    assert response.status_code == 500
    assert response.json() == {"error": "Server error"}
    errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert len(errors) == 1
