"""Validation of raw report request bodies into immutable ReportRequest values."""

from typing import Any, Dict, List

from clinic_reports.models import ExportFormat, ExportOptions, ReportRequest, ReportType
from clinic_reports.reporting.definitions import get_definition
from clinic_reports.reporting.exceptions import ClientInputError
from clinic_reports.config.logging_config import get_logger

logger = get_logger(__name__)


def _records(value: Any) -> List[Dict[str, Any]]:
    """Normalize a related collection: non-lists become empty, null members are dropped."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def parse_report_request(report_type: ReportType, payload: Any) -> ReportRequest:
    """
    Build a ReportRequest from a JSON body.

    Args:
        report_type: Which report the endpoint produces
        payload: Decoded JSON body

    Returns:
        Validated, immutable request

    Raises:
        ClientInputError: Subject record or exportOptions missing/malformed
    """
    definition = get_definition(report_type)

    if not isinstance(payload, dict):
        raise ClientInputError("Request body must be a JSON object")

    subject_key = definition.subject_key
    export_options = payload.get("exportOptions")

    if subject_key is not None:
        subject = payload.get(subject_key)
        if not isinstance(subject, dict) or not isinstance(export_options, dict):
            raise ClientInputError(f"Missing {subject_key} data or export options")
    else:
        if not isinstance(export_options, dict):
            raise ClientInputError("Missing export options")
        # Dashboard metrics live at the top level of the body
        subject = {
            key: value for key, value in payload.items()
            if key not in ("exportOptions", "exportFormat") and not isinstance(value, (list, dict))
        }

    source = subject if definition.collections_in_subject else payload
    collections = {name: _records(source.get(name)) for name in definition.collection_names}

    export_format = ExportFormat.CSV if payload.get("exportFormat") == "csv" else ExportFormat.PDF

    request = ReportRequest(
        report_type=report_type,
        subject=subject,
        collections=collections,
        export_options=ExportOptions.from_mapping(export_options),
        export_format=export_format,
    )
    logger.debug(
        "Report request parsed",
        report_type=report_type.value,
        export_format=export_format.value,
        enabled=sorted(key.value for key in request.export_options.enabled),
    )
    return request
