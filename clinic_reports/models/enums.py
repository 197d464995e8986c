"""Enumerations shared across the report engine."""
from enum import Enum


class ReportType(str, Enum):
    """Kinds of report the engine can produce."""
    PATIENT = "patient"
    CLINICIAN = "clinician"
    APPOINTMENT = "appointment"
    DASHBOARD = "dashboard"


class ExportFormat(str, Enum):
    """Output format requested by the client."""
    CSV = "csv"
    PDF = "pdf"


class SectionKey(str, Enum):
    """Independently toggleable report sections (keys of exportOptions)."""
    BASIC_INFO = "basicInfo"
    EMERGENCY_CONTACT = "emergencyContact"
    ALLERGIES = "allergies"
    SUPPLEMENTS = "supplements"
    PRESCRIPTIONS = "prescriptions"
    APPOINTMENTS = "appointments"
    LAB_RECORDS = "labRecords"
    VITALS = "vitals"
    APPOINTMENT_INFO = "appointmentInfo"
    PATIENT_INFO = "patientInfo"
    CLINICIAN_INFO = "clinicianInfo"
    # Dashboard
    OVERVIEW = "overview"
    AGE_DISTRIBUTION = "ageDistribution"
    CLINICIAN_DISTRIBUTION = "clinicianDistribution"


class AttachmentClassification(str, Enum):
    """Outcome of resolving a stored file reference."""
    IMAGE = "image"
    EMBEDDABLE_PDF = "embeddable_pdf"
    UNSUPPORTED = "unsupported"
    UNAVAILABLE = "unavailable"


class EntryLayout(str, Enum):
    """How the composer draws the entries of a collection section."""
    SUMMARY = "summary"  # one wrapped line: "Allergy 1: Peanuts (Severity: High)"
    FIELDS = "fields"    # sub-heading followed by label/value rows
    BULLETS = "bullets"  # heading followed by indented "- Label: value" lines


class CsvEntryMode(str, Enum):
    """How the tabular exporter flattens the entries of a collection section."""
    CATEGORY = "category"  # entry label becomes the category ("Supplement 2")
    PREFIX = "prefix"      # section category kept, entry label prefixes the field
