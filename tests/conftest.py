"""Pytest fixtures for the test suite."""
import asyncio
import io
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

import pytest
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from clinic_reports.config.settings import Settings
from clinic_reports.reporting.attachments import AttachmentResolver
from clinic_reports.reporting.service import ReportService
from clinic_reports.storage.blob_store import BlobStoreError

STORAGE_URL = "https://clinic.supabase.co/storage/v1/object/public"
GENERATION_DATE = date(2025, 3, 7)


class FakeBlobStore:
    """In-memory BlobStore keyed by "bucket/path"."""

    def __init__(self, objects: Optional[Dict[str, Tuple[bytes, str]]] = None, fail: bool = False,
                 slow: Optional[Set[str]] = None, delay: float = 0.0):
        self.objects = objects or {}
        self.fail = fail
        self.slow = slow or set()
        self.delay = delay
        self.signed = []

    async def sign_url(self, bucket: str, path: str, expires_in: int) -> str:
        self.signed.append((bucket, path, expires_in))
        if self.fail:
            raise BlobStoreError("storage offline")
        key = f"{bucket}/{path}"
        if key not in self.objects:
            raise BlobStoreError(f"object not found: {key}")
        return f"signed://{key}"

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        key = url[len("signed://"):]
        if key in self.slow:
            await asyncio.sleep(self.delay)
        return self.objects[key]


def make_png(width: int = 8, height: int = 8, color: Tuple[int, int, int] = (200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_pdf(pages: int = 1, label: str = "Attachment") -> bytes:
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    for number in range(1, pages + 1):
        pdf.drawString(72, 720, f"{label} page {number}")
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake storage project."""
    return Settings(
        supabase_url="https://clinic.supabase.co",
        supabase_key="test-key",
        profile_bucket="profile-pictures",
        lab_records_bucket="laboratory-files",
        attachment_fetch_budget_seconds=5.0,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def pdf_factory():
    """Build small reportlab PDFs with a given page count."""
    return make_pdf


@pytest.fixture
def patient_record() -> Dict[str, Any]:
    """Jane Doe, with a profile picture and an emergency contact."""
    return {
        "first_name": "Jane",
        "middle_name": "",
        "last_name": "Doe",
        "birth_date": "1990-03-07",
        "age": 35,
        "contact_number": "555-0100",
        "address": "12 Elm Street, Springfield",
        "marital_status": "Married",
        "citizenship": "Filipino",
        "religion": None,
        "occupation": "Accountant",
        "status": "Active",
        "fileurl": f"{STORAGE_URL}/profile-pictures/jane.png",
        "ec_first_name": "John",
        "ec_last_name": "Doe",
        "ec_relationship": "Spouse",
        "ec_contact_number": "555-0101",
    }


@pytest.fixture
def patient_payload(patient_record) -> Dict[str, Any]:
    """Patient export body with every collection populated."""
    return {
        "patient": patient_record,
        "allergies": [{"name": "Peanuts", "severity": "High"}],
        "supplements": [{"name": "Folic Acid", "strength": "400mcg", "amount": "1 tablet",
                         "frequency": "Daily", "clinician": "Dr. Cruz", "status": "Active"}],
        "prescriptions": [{"name": "Amoxicillin", "strength": "500mg", "amount": "1 capsule",
                           "frequency": "3x daily", "route": "Oral", "clinician": "Dr. Cruz",
                           "status": "Completed", "date": "2025-01-15T09:30:00Z"}],
        "appointments": [{"service": "Prenatal Checkup", "date": "2025-02-10", "clinician": "Dr. Cruz",
                          "status": "Completed", "payment_status": "Paid"}],
        "labRecords": [
            {"filename": "cbc.pdf", "type": "Blood Test", "doctor": "Dr. Reyes", "company": "City Lab",
             "ordered_date": "2025-01-02", "fileurl": f"{STORAGE_URL}/laboratory-files/cbc.pdf"},
            {"filename": "ultrasound.png", "type": "Imaging", "doctor": "Dr. Reyes",
             "fileurl": f"{STORAGE_URL}/laboratory-files/ultrasound.png"},
        ],
        "exportOptions": {
            "basicInfo": True,
            "allergies": True,
            "supplements": True,
            "prescriptions": True,
            "appointments": True,
            "labRecords": True,
        },
    }


@pytest.fixture
def clinician_payload() -> Dict[str, Any]:
    return {
        "clinician": {
            "first_name": "Maria",
            "last_name": "Cruz",
            "role": "Doctor",
            "specialization": "Obstetrics",
            "license_number": "PRC-12345",
        },
        "supplements": [{"name": "Iron", "strength": "65mg", "patient": "Jane Doe", "status": "Active"}],
        "prescriptions": [{"name": "Amoxicillin", "strength": "500mg", "patient": "Jane Doe",
                           "date": "2025-01-15"}],
        "appointments": [{"service": "Prenatal Checkup", "date": "2025-02-10", "patient": "Jane Doe"}],
        "exportOptions": {"basicInfo": True, "supplements": True, "prescriptions": True, "appointments": True},
    }


@pytest.fixture
def appointment_payload() -> Dict[str, Any]:
    return {
        "appointment": {
            "date": "2025-02-10T08:00:00Z",
            "service": "Prenatal Checkup",
            "status": "Completed",
            "payment_status": "Paid",
            "weight": 62,
            "gestational_age": 24,
            "patient": {"person": {"first_name": "Jane", "last_name": "Doe", "age": 35}},
            "clinician": {"person": {"first_name": "Maria", "last_name": "Cruz"}, "role": "Doctor"},
            "vitals": {"temperature": 36.8, "pulse_rate": 82, "blood_pressure": "110/70",
                       "respiration_rate": 18, "oxygen_saturation": 98},
            "prescriptions": [{"medicine": "Ferrous Sulfate", "dosage": "325mg", "appointment_id": 42}],
            "supplements": [{"name": "Folic Acid", "strength": "400mcg"}],
        },
        "exportOptions": {
            "appointmentInfo": True,
            "patientInfo": True,
            "clinicianInfo": True,
            "vitals": True,
            "prescriptions": True,
            "supplements": True,
        },
    }


@pytest.fixture
def dashboard_payload() -> Dict[str, Any]:
    return {
        "activePatients": 120,
        "activeClinicians": 8,
        "totalAppointments": 0,
        "chartData": [{"age": "18-25", "numberOfPatients": 30}, {"age": "26-35", "numberOfPatients": 55}],
        "clinicianData": [{"clinicianName": "Dr. Cruz", "numberOfPatients": 40}],
        "appointments": [{"patient_name": "Jane Doe", "clinician_name": "Dr. Cruz", "date": "2025-03-07",
                          "service": "Checkup", "status": "Scheduled", "payment_status": "Pending"}],
        "exportOptions": {
            "overview": True,
            "ageDistribution": True,
            "clinicianDistribution": True,
            "appointments": True,
        },
    }


@pytest.fixture
def stored_objects(png_bytes, pdf_factory) -> Dict[str, Tuple[bytes, str]]:
    """Storage contents matching the patient payload's attachment URLs."""
    return {
        "profile-pictures/jane.png": (png_bytes, "image/png"),
        "laboratory-files/cbc.pdf": (pdf_factory(pages=2, label="CBC"), "application/pdf"),
        "laboratory-files/ultrasound.png": (png_bytes, "image/png"),
    }


@pytest.fixture
def blob_store(stored_objects) -> FakeBlobStore:
    return FakeBlobStore(objects=stored_objects)


@pytest.fixture
def make_service(settings):
    """Build a ReportService over a given store with a fixed generation date."""
    def factory(store: FakeBlobStore) -> ReportService:
        return ReportService(
            resolver=AttachmentResolver(store, settings),
            settings=settings,
            clock=lambda: GENERATION_DATE,
        )
    return factory
