"""Lays out report sections onto A4 pages.

Composition is a pure function of the section data, the already-resolved
attachments and the generation date. Attachment problems never abort a
document; they degrade to a visible placeholder line.
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from clinic_reports.config.logging_config import get_logger
from clinic_reports.models import (
    AttachmentClassification,
    AttachmentReference,
    EntryLayout,
    FieldRow,
    ResolvedAttachment,
    SectionData,
    SectionEntry,
)
from clinic_reports.reporting.formatting import format_short_date
from clinic_reports.reporting.layout import (
    BLOCK_PADDING,
    CONTENT_WIDTH,
    INDENT,
    LEFT_MARGIN,
    MUTED_TEXT,
    PAGE_CENTER,
    SECTION_GAP,
    SMALL_FONT_SIZE,
    SUBHEADER_FONT_SIZE,
    TITLE_BAND,
    TITLE_FONT_SIZE,
    TOP_MARGIN,
    VALUE_OFFSET,
    ComposedDocument,
    PageBuilder,
    font_name,
    image_size,
)

logger = get_logger(__name__)

PROFILE_IMAGE_SIZE = 40.0
PROFILE_IMAGE_GUTTER = 5.0
LAB_IMAGE_WIDTH = 80.0
LAB_IMAGE_HEIGHT = 60.0
TITLE_BLOCK_HEIGHT = 20.0
TITLE_BAND_HEIGHT = 16.0
MIN_TITLE_FONT_SIZE = 12

PROFILE_IMAGE_PLACEHOLDER = "[Profile image not available]"
IMAGE_PLACEHOLDER = "[Image not available]"
PDF_APPENDED_NOTE = "[Attached PDF appended at the end of this report]"
UNSUPPORTED_NOTE = "[Unsupported attachment type: {mime_type}]"

Attachments = Dict[AttachmentReference, ResolvedAttachment]


class CompositionResult(BaseModel):
    """Composed pages plus the sub-documents queued for the merger, in order."""
    document: ComposedDocument
    appendices: List[bytes] = Field(default_factory=list)


def _pdf_rows(rows: List[FieldRow]) -> List[FieldRow]:
    return [row for row in rows if not row.csv_only]


def fit_title(title: str, width: float = CONTENT_WIDTH - 6, font_size: int = TITLE_FONT_SIZE) -> Tuple[str, int]:
    """Shrink (then truncate) a title until it fits on one line of the title band."""
    limit = width * mm
    font = font_name(bold=True)
    size = font_size
    while size > MIN_TITLE_FONT_SIZE and stringWidth(title, font, size) > limit:
        size -= 1
    if stringWidth(title, font, size) <= limit:
        return title, size
    truncated = title
    while truncated and stringWidth(truncated + "...", font, size) > limit:
        truncated = truncated[:-1]
    return truncated.rstrip() + "...", size


class DocumentComposer:
    """Turns ordered sections into a ComposedDocument."""

    def compose(
        self,
        title: str,
        generated_on: date,
        sections: List[SectionData],
        attachments: Optional[Attachments] = None,
    ) -> CompositionResult:
        """
        Lay out a report.

        Args:
            title: Document title shown in the title band
            generated_on: Date printed under the title
            sections: Sections in render order
            attachments: Resolved attachments keyed by reference

        Returns:
            CompositionResult with pages and queued PDF appendices
        """
        attachments = attachments or {}
        builder = PageBuilder(start_y=TOP_MARGIN)
        appendices: List[bytes] = []

        self._title_block(builder, title, generated_on)
        for section in sections:
            self._section(builder, section, attachments, appendices)

        document = builder.build(title)
        logger.debug(
            "Document composed",
            sections=len(sections),
            pages=len(document.pages),
            appendices=len(appendices),
        )
        return CompositionResult(document=document, appendices=appendices)

    def _title_block(self, builder: PageBuilder, title: str, generated_on: date) -> None:
        text, font_size = fit_title(title)
        builder.band(
            text,
            height=TITLE_BLOCK_HEIGHT,
            band_height=TITLE_BAND_HEIGHT,
            font_size=font_size,
            color=TITLE_BAND,
            align="center",
        )
        builder.line(format_short_date(generated_on), x=PAGE_CENTER, align="center")
        builder.gap()

    def _section(self, builder: PageBuilder, section: SectionData,
                 attachments: Attachments, appendices: List[bytes]) -> None:
        builder.band(section.title)

        if section.fields or section.image:
            self._fields_with_image(builder, section, attachments)

        for entry in section.entries:
            if section.entry_layout == EntryLayout.SUMMARY:
                builder.paragraph(self._summary(entry))
            elif section.entry_layout == EntryLayout.BULLETS:
                builder.paragraph(entry.heading or f"{entry.label}:", bold=True)
                for row in _pdf_rows(entry.fields):
                    builder.paragraph(f"- {row.label}: {row.pdf_text}", x=LEFT_MARGIN + INDENT,
                                      width=CONTENT_WIDTH - INDENT)
            else:
                builder.line(entry.heading or entry.label, font_size=SUBHEADER_FONT_SIZE, bold=True)
                for row in _pdf_rows(entry.fields):
                    builder.field_row(row.label, row.pdf_text)

            if entry.attachment is not None:
                self._entry_attachment(builder, entry, attachments, appendices)
            builder.gap(BLOCK_PADDING)

        builder.gap(SECTION_GAP)

    def _fields_with_image(self, builder: PageBuilder, section: SectionData, attachments: Attachments) -> None:
        image_bottom = None
        image_page = None

        if section.image is not None:
            content = self._usable_image(attachments.get(section.image))
            if content is None:
                builder.line(PROFILE_IMAGE_PLACEHOLDER, font_size=SMALL_FONT_SIZE, color=MUTED_TEXT)
            else:
                image_bottom = builder.image(
                    content,
                    x=LEFT_MARGIN + CONTENT_WIDTH - PROFILE_IMAGE_SIZE,
                    width=PROFILE_IMAGE_SIZE,
                    height=PROFILE_IMAGE_SIZE,
                    advance=False,
                )
                image_page = builder.page_index

        narrow_width = CONTENT_WIDTH - VALUE_OFFSET - PROFILE_IMAGE_SIZE - PROFILE_IMAGE_GUTTER
        for row in _pdf_rows(section.fields):
            beside_image = (
                image_bottom is not None
                and builder.page_index == image_page
                and builder.y < image_bottom
            )
            builder.field_row(row.label, row.pdf_text + section.pdf_value_suffix,
                              value_width=narrow_width if beside_image else None)

        if image_bottom is not None and builder.page_index == image_page:
            builder.move_to(image_bottom)

    def _entry_attachment(self, builder: PageBuilder, entry: SectionEntry,
                          attachments: Attachments, appendices: List[bytes]) -> None:
        resolved = attachments.get(entry.attachment) or ResolvedAttachment.unavailable()
        classification = resolved.classification

        if classification == AttachmentClassification.IMAGE:
            content = self._usable_image(resolved)
            if content is None:
                self._note(builder, IMAGE_PLACEHOLDER)
            else:
                builder.image(content, x=LEFT_MARGIN + INDENT, width=LAB_IMAGE_WIDTH, height=LAB_IMAGE_HEIGHT)
        elif classification == AttachmentClassification.EMBEDDABLE_PDF:
            appendices.append(resolved.content)
            self._note(builder, PDF_APPENDED_NOTE)
        elif classification == AttachmentClassification.UNSUPPORTED:
            self._note(builder, UNSUPPORTED_NOTE.format(mime_type=resolved.mime_type[:80]))
        else:
            self._note(builder, IMAGE_PLACEHOLDER)

    def _note(self, builder: PageBuilder, text: str) -> None:
        builder.paragraph(text, x=LEFT_MARGIN + INDENT, width=CONTENT_WIDTH - INDENT,
                          font_size=SMALL_FONT_SIZE, color=MUTED_TEXT)

    def _usable_image(self, resolved: Optional[ResolvedAttachment]) -> Optional[bytes]:
        """Image bytes that reportlab can decode, or None."""
        if resolved is None or resolved.classification != AttachmentClassification.IMAGE:
            return None
        try:
            image_size(resolved.content)
        except Exception as e:
            logger.warning("Attachment image could not be decoded", mime_type=resolved.mime_type, error=str(e))
            return None
        return resolved.content

    @staticmethod
    def _summary(entry: SectionEntry) -> str:
        """One-line entry summary: "Allergy 1: Peanuts (Severity: High)"."""
        rows = _pdf_rows(entry.fields)
        if not rows:
            return entry.label
        head, rest = rows[0], rows[1:]
        text = f"{entry.label}: {head.pdf_text}"
        if rest:
            text += " (" + ", ".join(f"{row.label}: {row.pdf_text}" for row in rest) + ")"
        return text
