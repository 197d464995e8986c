"""Tests for the paginated document composer."""
from datetime import date

import pytest

from clinic_reports.models import (
    AttachmentClassification,
    FieldRow,
    ReportType,
    ResolvedAttachment,
    SectionData,
    SectionEntry,
    SectionKey,
)
from clinic_reports.reporting.composer import (
    IMAGE_PLACEHOLDER,
    PDF_APPENDED_NOTE,
    PROFILE_IMAGE_PLACEHOLDER,
    DocumentComposer,
    fit_title,
)
from clinic_reports.reporting.definitions import select_sections
from clinic_reports.reporting.layout import PAGE_HEIGHT, TITLE_FONT_SIZE, ImageOp, TextOp
from clinic_reports.reporting.requests import parse_report_request

GENERATED = date(2025, 3, 7)


def _texts(document):
    return [op.text for page in document.pages for op in page.ops if isinstance(op, TextOp)]


def _images(document):
    return [op for page in document.pages for op in page.ops if isinstance(op, ImageOp)]


@pytest.fixture
def patient_sections(patient_payload, settings):
    request = parse_report_request(ReportType.PATIENT, patient_payload)
    return select_sections(request, settings)


def _resolved(content, mime_type, classification):
    return ResolvedAttachment(content=content, mime_type=mime_type, classification=classification)


class TestTitleBlock:

    def test_no_sections_is_single_page(self):
        result = DocumentComposer().compose("Patient Report: Jane Doe", GENERATED, [])
        assert len(result.document.pages) == 1
        assert _texts(result.document) == ["Patient Report: Jane Doe", "3/7/2025"]
        assert result.appendices == []

    def test_fit_title_keeps_short_titles(self):
        assert fit_title("Dashboard Report") == ("Dashboard Report", TITLE_FONT_SIZE)

    def test_fit_title_shrinks_then_truncates(self):
        text, size = fit_title("Patient Report: " + "Maximiliana " * 20)
        assert size < TITLE_FONT_SIZE
        assert text.endswith("...")


class TestAttachments:

    def test_profile_image_beside_basic_info(self, patient_sections, png_bytes):
        basic = patient_sections[0]
        attachments = {basic.image: _resolved(png_bytes, "image/png", AttachmentClassification.IMAGE)}
        result = DocumentComposer().compose("Patient Report", GENERATED, [basic], attachments)
        images = _images(result.document)
        assert len(images) == 1
        assert (images[0].x, images[0].width, images[0].height) == (150, 40, 40)
        assert PROFILE_IMAGE_PLACEHOLDER not in _texts(result.document)

    def test_profile_image_unavailable(self, patient_sections):
        result = DocumentComposer().compose("Patient Report", GENERATED, [patient_sections[0]], {})
        assert PROFILE_IMAGE_PLACEHOLDER in _texts(result.document)
        assert "Jane Doe" in _texts(result.document)

    def test_corrupt_image_degrades_to_placeholder(self, patient_sections):
        basic = patient_sections[0]
        attachments = {basic.image: _resolved(b"not a png", "image/png", AttachmentClassification.IMAGE)}
        result = DocumentComposer().compose("Patient Report", GENERATED, [basic], attachments)
        assert PROFILE_IMAGE_PLACEHOLDER in _texts(result.document)
        assert _images(result.document) == []

    def test_lab_pdf_is_queued(self, patient_sections, png_bytes, pdf_factory):
        labs = patient_sections[-1]
        pdf = pdf_factory(pages=2)
        attachments = {
            labs.entries[0].attachment: _resolved(pdf, "application/pdf", AttachmentClassification.EMBEDDABLE_PDF),
            labs.entries[1].attachment: _resolved(png_bytes, "image/png", AttachmentClassification.IMAGE),
        }
        result = DocumentComposer().compose("Patient Report", GENERATED, [labs], attachments)
        assert result.appendices == [pdf]
        assert PDF_APPENDED_NOTE in _texts(result.document)
        lab_images = _images(result.document)
        assert [(op.width, op.height) for op in lab_images] == [(80, 60)]

    def test_unsupported_attachment(self, patient_sections):
        labs = patient_sections[-1]
        attachments = {
            labs.entries[0].attachment: _resolved(b"hello", "text/plain", AttachmentClassification.UNSUPPORTED),
        }
        result = DocumentComposer().compose("Patient Report", GENERATED, [labs], attachments)
        texts = _texts(result.document)
        assert "[Unsupported attachment type: text/plain]" in texts
        assert IMAGE_PLACEHOLDER in texts
        assert result.appendices == []

    def test_every_lab_record_unavailable(self, patient_sections):
        labs = patient_sections[-1]
        result = DocumentComposer().compose("Patient Report", GENERATED, [labs], {})
        assert _texts(result.document).count(IMAGE_PLACEHOLDER) == 2
        assert "cbc.pdf (Blood Test)" in _texts(result.document)


class TestEntryLayouts:

    def test_summary_line(self, patient_sections):
        allergies = next(s for s in patient_sections if s.key == SectionKey.ALLERGIES)
        result = DocumentComposer().compose("Patient Report", GENERATED, [allergies])
        assert "Allergy 1: Peanuts (Severity: High)" in _texts(result.document)

    def test_bullets(self, patient_sections):
        labs = patient_sections[-1]
        result = DocumentComposer().compose("Patient Report", GENERATED, [labs])
        assert "- Doctor: Dr. Reyes" in _texts(result.document)


class TestPagination:

    def test_long_report_stays_within_pages(self):
        entries = [
            SectionEntry(
                label=f"Prescription {index}",
                fields=[FieldRow(label="Name", value="Amoxicillin"),
                        FieldRow(label="Notes", value="take with food " * 15)],
            )
            for index in range(1, 80)
        ]
        section = SectionData(
            key=SectionKey.PRESCRIPTIONS,
            title="Prescriptions",
            category="Prescriptions",
            entries=entries,
        )
        result = DocumentComposer().compose("Appointment Report", GENERATED, [section])
        assert len(result.document.pages) > 1
        for page in result.document.pages:
            for op in page.ops:
                assert op.y + op.height <= PAGE_HEIGHT

    def test_composition_is_deterministic(self, patient_sections):
        first = DocumentComposer().compose("Patient Report", GENERATED, patient_sections)
        second = DocumentComposer().compose("Patient Report", GENERATED, patient_sections)
        assert first.document == second.document


class TestPdfOnlyPresentation:

    def test_clinician_distribution_counts_read_as_patients(self, dashboard_payload, settings):
        request = parse_report_request(ReportType.DASHBOARD, dashboard_payload)
        sections = select_sections(request, settings)
        result = DocumentComposer().compose("Dashboard Report", GENERATED, sections)
        texts = _texts(result.document)
        assert "40 patients" in texts
        assert "30" in texts

    def test_file_url_only_in_csv(self, patient_sections):
        labs = patient_sections[-1]
        result = DocumentComposer().compose("Patient Report", GENERATED, [labs])
        assert not any(text.startswith("- File URL") for text in _texts(result.document))

    def test_clinician_summaries_fall_back_to_na(self, clinician_payload, settings):
        request = parse_report_request(ReportType.CLINICIAN, clinician_payload)
        sections = select_sections(request, settings)
        text = " ".join(_texts(DocumentComposer().compose("Clinician Report", GENERATED, sections).document))

        assert "Supplement 1: Iron (Strength: 65mg, Amount: N/A" in text
        assert "Route: N/A" in text
        assert "Appointment 1: Prenatal Checkup (Date: 2/10/2025, Patient: Jane Doe, Status: N/A" in text
        assert "Amount: Not specified" not in text
