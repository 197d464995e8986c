"""Data models for report requests, sections and attachments."""
from clinic_reports.models.enums import (
    ReportType,
    ExportFormat,
    SectionKey,
    AttachmentClassification,
    EntryLayout,
    CsvEntryMode,
)
from clinic_reports.models.report import (
    AttachmentReference,
    ResolvedAttachment,
    FieldRow,
    SectionEntry,
    SectionData,
    ExportOptions,
    ReportRequest,
    ReportOutput,
)

__all__ = [
    # Enums
    "ReportType",
    "ExportFormat",
    "SectionKey",
    "AttachmentClassification",
    "EntryLayout",
    "CsvEntryMode",
    # Values
    "AttachmentReference",
    "ResolvedAttachment",
    "FieldRow",
    "SectionEntry",
    "SectionData",
    "ExportOptions",
    "ReportRequest",
    "ReportOutput",
]
