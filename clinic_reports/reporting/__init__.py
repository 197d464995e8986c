"""Report engine: section selection, CSV export, PDF composition and merging."""
from clinic_reports.reporting.exceptions import (
    ReportError,
    ClientInputError,
    AttachmentUnavailable,
    SubDocumentMergeFailure,
    ComposerFatal,
)
from clinic_reports.reporting.service import ReportService, get_report_service

__all__ = [
    # Exceptions
    "ReportError",
    "ClientInputError",
    "AttachmentUnavailable",
    "SubDocumentMergeFailure",
    "ComposerFatal",
    # Service
    "ReportService",
    "get_report_service",
]
