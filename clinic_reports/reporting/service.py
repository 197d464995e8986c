"""Report generation orchestration: parse, select, resolve, compose, merge."""
from datetime import date
from typing import Any, Callable, List, Optional

from clinic_reports.config.settings import Settings, get_settings
from clinic_reports.config.logging_config import get_logger
from clinic_reports.models import AttachmentReference, ExportFormat, ReportOutput, ReportRequest, ReportType, SectionData
from clinic_reports.reporting.attachments import AttachmentResolver
from clinic_reports.reporting.composer import DocumentComposer
from clinic_reports.reporting.csv_exporter import export_csv
from clinic_reports.reporting.definitions import ReportDefinition, get_definition, report_filename, select_sections
from clinic_reports.reporting.exceptions import ComposerFatal
from clinic_reports.reporting.merger import DocumentMerger, PdfDocumentMerger
from clinic_reports.reporting.requests import parse_report_request

logger = get_logger(__name__)

CSV_MEDIA_TYPE = "text/csv"
PDF_MEDIA_TYPE = "application/pdf"


class ReportService:
    """
    Produces one downloadable report per call.

    Attachments are all resolved up front so composition and merging stay
    synchronous and deterministic for a given payload and generation date.
    """

    def __init__(
        self,
        resolver: Optional[AttachmentResolver] = None,
        merger: Optional[DocumentMerger] = None,
        composer: Optional[DocumentComposer] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or AttachmentResolver(settings=self.settings)
        self.merger = merger or PdfDocumentMerger()
        self.composer = composer or DocumentComposer()
        self.clock = clock or date.today

    async def generate(self, report_type: ReportType, payload: Any) -> ReportOutput:
        """
        Generate a report from a decoded request body.

        Args:
            report_type: Report kind served by the calling endpoint
            payload: Decoded JSON body

        Returns:
            ReportOutput with bytes, media type and suggested filename

        Raises:
            ClientInputError: Subject record or exportOptions missing
            ComposerFatal: Anything else went wrong while producing the document
        """
        request = parse_report_request(report_type, payload)
        definition = get_definition(report_type)
        today = self.clock()

        try:
            filename = report_filename(request, today)
            sections = select_sections(request, self.settings)

            if request.export_format == ExportFormat.CSV:
                content = export_csv(definition, sections).encode("utf-8")
                media_type = CSV_MEDIA_TYPE
            else:
                content = await self._render_pdf(definition, request, sections, today)
                media_type = PDF_MEDIA_TYPE
        except ComposerFatal as e:
            logger.error("Report generation failed", report_type=report_type.value, error=str(e))
            raise
        except Exception as e:
            logger.error(
                "Report generation failed",
                report_type=report_type.value,
                error=str(e),
                exc_info=True,
            )
            raise ComposerFatal(f"Failed to generate {report_type.value} report: {e}") from e

        logger.info(
            "Report generated",
            report_type=report_type.value,
            export_format=request.export_format.value,
            sections=[section.key.value for section in sections],
            size_bytes=len(content),
        )
        return ReportOutput(content=content, media_type=media_type, filename=filename)

    async def _render_pdf(
        self,
        definition: ReportDefinition,
        request: ReportRequest,
        sections: List[SectionData],
        today: date,
    ) -> bytes:
        refs: List[AttachmentReference] = []
        for section in sections:
            refs.extend(section.attachment_references())

        attachments = await self.resolver.resolve_many(refs)
        result = self.composer.compose(definition.title(request), today, sections, attachments)
        return self.merger.merge(result.document, result.appendices)


# Global instance
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """Get or create the global report service."""
    global _report_service
    if _report_service is None:
        _report_service = ReportService()
    return _report_service
