"""Per-report-type definitions: subject key, titles, filenames and section order."""

from datetime import date
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from clinic_reports.config.settings import Settings
from clinic_reports.models import ExportFormat, ReportRequest, ReportType, SectionData
from clinic_reports.reporting.exceptions import ComposerFatal
from clinic_reports.reporting.formatting import full_name, is_present, parse_date, sanitize_filename
from clinic_reports.reporting.sections import (
    APPOINTMENT_SECTIONS,
    CLINICIAN_SECTIONS,
    DASHBOARD_SECTIONS,
    PATIENT_SECTIONS,
    SectionSpec,
    appointment_patient_name,
    build_sections,
)


class ReportDefinition(NamedTuple):
    """Static description of one report type."""
    report_type: ReportType
    entity: str
    subject_key: Optional[str]
    collection_names: Tuple[str, ...]
    collections_in_subject: bool
    csv_header: Tuple[str, str, str]
    sections: List[SectionSpec]
    title: Callable[[ReportRequest], str]
    filename_suffix: Callable[[ReportRequest, date], str]


def _person_title(entity: str) -> Callable[[ReportRequest], str]:
    def title(request: ReportRequest) -> str:
        return f"{entity} Report: {full_name(request.subject)}"
    return title


def _person_suffix(request: ReportRequest, today: date) -> str:
    return full_name(request.subject)


def _appointment_suffix(request: ReportRequest, today: date) -> str:
    raw_date = request.subject.get("date")
    if is_present(raw_date):
        appointment_date = parse_date(raw_date)
        if appointment_date is None:
            raise ComposerFatal(f"Invalid appointment date: {raw_date!r}")
    else:
        appointment_date = today
    return f"{appointment_patient_name(request.subject)}_{appointment_date.isoformat()}"


def _dashboard_suffix(request: ReportRequest, today: date) -> str:
    return today.isoformat()


REPORT_DEFINITIONS: Dict[ReportType, ReportDefinition] = {
    ReportType.PATIENT: ReportDefinition(
        report_type=ReportType.PATIENT,
        entity="Patient",
        subject_key="patient",
        collection_names=("allergies", "supplements", "prescriptions", "appointments", "labRecords"),
        collections_in_subject=False,
        csv_header=("Category", "Field", "Value"),
        sections=PATIENT_SECTIONS,
        title=_person_title("Patient"),
        filename_suffix=_person_suffix,
    ),
    ReportType.CLINICIAN: ReportDefinition(
        report_type=ReportType.CLINICIAN,
        entity="Clinician",
        subject_key="clinician",
        collection_names=("supplements", "prescriptions", "appointments"),
        collections_in_subject=False,
        csv_header=("Category", "Field", "Value"),
        sections=CLINICIAN_SECTIONS,
        title=_person_title("Clinician"),
        filename_suffix=_person_suffix,
    ),
    ReportType.APPOINTMENT: ReportDefinition(
        report_type=ReportType.APPOINTMENT,
        entity="Appointment",
        subject_key="appointment",
        collection_names=("prescriptions", "supplements"),
        collections_in_subject=True,
        csv_header=("Category", "Field", "Value"),
        sections=APPOINTMENT_SECTIONS,
        title=lambda request: "Appointment Report",
        filename_suffix=_appointment_suffix,
    ),
    ReportType.DASHBOARD: ReportDefinition(
        report_type=ReportType.DASHBOARD,
        entity="Dashboard",
        subject_key=None,
        collection_names=("chartData", "clinicianData", "appointments"),
        collections_in_subject=False,
        csv_header=("Category", "Metric", "Value"),
        sections=DASHBOARD_SECTIONS,
        title=lambda request: "Dashboard Report",
        filename_suffix=_dashboard_suffix,
    ),
}


def get_definition(report_type: ReportType) -> ReportDefinition:
    """Look up the definition for a report type."""
    return REPORT_DEFINITIONS[report_type]


def select_sections(request: ReportRequest, settings: Optional[Settings] = None) -> List[SectionData]:
    """Sections to render for a request, in the report type's fixed priority order."""
    return build_sections(get_definition(request.report_type).sections, request, settings)


def report_filename(request: ReportRequest, today: date) -> str:
    """Suggested download filename, e.g. Patient_Report_Jane_Doe.pdf."""
    definition = get_definition(request.report_type)
    stem = sanitize_filename(f"{definition.entity}_Report_{definition.filename_suffix(request, today)}")
    extension = "csv" if request.export_format == ExportFormat.CSV else "pdf"
    return f"{stem}.{extension}"
