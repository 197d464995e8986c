"""Report export API routes."""
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from clinic_reports.config.logging_config import get_logger
from clinic_reports.models import ReportType
from clinic_reports.reporting.exceptions import ClientInputError, ReportError
from clinic_reports.reporting.service import ReportService, get_report_service

logger = get_logger(__name__)

router = APIRouter(tags=["Reports"])

GENERIC_FAILURE = "An unexpected error occurred while generating the report."


async def _export(report_type: ReportType, request: Request, service: ReportService) -> Response:
    """Decode the body, generate the report and wrap it as a download."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Rejected non-JSON report request", report_type=report_type.value)
        return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON"})

    try:
        output = await service.generate(report_type, payload)
    except ClientInputError as e:
        logger.warning("Rejected report request", report_type=report_type.value, error=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})
    except ReportError as e:
        logger.error("Report export failed", report_type=report_type.value, error=str(e))
        return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE})

    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": f'attachment; filename="{output.filename}"'},
    )


@router.post("/export")
async def export_patient_report(request: Request, service: ReportService = Depends(get_report_service)):
    """
    Export a patient report.

    Body: {"patient": {...}, "exportOptions": {...}, "exportFormat": "pdf"|"csv",
    plus optional allergies, supplements, prescriptions, appointments, labRecords}.
    """
    return await _export(ReportType.PATIENT, request, service)


@router.post("/export/clinician")
async def export_clinician_report(request: Request, service: ReportService = Depends(get_report_service)):
    """Export a clinician report (supplements, prescriptions and appointments they issued)."""
    return await _export(ReportType.CLINICIAN, request, service)


@router.post("/export/appointment")
async def export_appointment_report(request: Request, service: ReportService = Depends(get_report_service)):
    """Export a single appointment with its vitals and medications."""
    return await _export(ReportType.APPOINTMENT, request, service)


@router.post("/dashboard-export")
async def export_dashboard_report(request: Request, service: ReportService = Depends(get_report_service)):
    """Export dashboard metrics; totals and distributions sit at the top level of the body."""
    return await _export(ReportType.DASHBOARD, request, service)
