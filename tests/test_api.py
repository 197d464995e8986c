"""Tests for the report export HTTP API."""
import pytest
from fastapi.testclient import TestClient

from clinic_reports.main import app
from clinic_reports.reporting.service import get_report_service
from clinic_reports.storage.blob_store import get_blob_store


@pytest.fixture
def client(make_service, blob_store):
    app.dependency_overrides[get_report_service] = lambda: make_service(blob_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestExportEndpoints:

    def test_patient_csv_download(self, client, patient_payload):
        patient_payload["exportFormat"] = "csv"
        response = client.post("/api/export", json=patient_payload)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="Patient_Report_Jane_Doe.csv"'
        assert response.text.startswith("Category,Field,Value\n")

    def test_clinician_pdf_download(self, client, clinician_payload):
        response = client.post("/api/export/clinician", json=clinician_payload)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert "Clinician_Report_Maria_Cruz.pdf" in response.headers["content-disposition"]

    def test_appointment_pdf_download(self, client, appointment_payload):
        response = client.post("/api/export/appointment", json=appointment_payload)
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_dashboard_download(self, client, dashboard_payload):
        response = client.post("/api/dashboard-export", json=dashboard_payload)
        assert response.status_code == 200
        assert "Dashboard_Report_2025-03-07.pdf" in response.headers["content-disposition"]

    def test_missing_subject_is_400(self, client):
        response = client.post("/api/export", json={"exportOptions": {"basicInfo": True}})
        assert response.status_code == 400
        assert response.json() == {"error": "Missing patient data or export options"}

    def test_non_json_body_is_400(self, client):
        response = client.post("/api/export", content=b"{not json", headers={"content-type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_generation_failure_is_500(self, client, appointment_payload):
        appointment_payload["appointment"]["date"] = "not-a-date"
        response = client.post("/api/export/appointment", json=appointment_payload)
        assert response.status_code == 500
        assert response.json() == {"error": "An unexpected error occurred while generating the report."}


class TestUtilityEndpoints:

    def test_health(self):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self):
        assert TestClient(app).get("/").json()["name"] == "Clinic Report Service"


class TestLifespan:

    def test_shared_service_survives_restart(self):
        app.dependency_overrides.clear()
        service = get_report_service()

        for _ in range(2):
            with TestClient(app):
                store = service.resolver.blob_store
                assert store is get_blob_store()
                assert not store._client.is_closed
            assert store._client.is_closed

        assert get_report_service() is service
