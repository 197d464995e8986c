"""Paginated layout primitives and PDF rendering.

Coordinates are millimetres measured from the top-left corner of an A4 page;
every draw op records its top edge (y) and vertical extent (height). The
PageBuilder owns the layout cursor and enforces check-then-draw: each atomic
block calls ensure(extent) before drawing, which starts a new page when the
block would cross the page height limit.
"""

import io
from pathlib import Path
from typing import List, Literal, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, Field
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from clinic_reports.config.logging_config import get_logger

logger = get_logger(__name__)

# ─── Geometry (mm) ───────────────────────────────────────────────────────────

PAGE_HEIGHT = 260.0
TOP_MARGIN = 20.0
LEFT_MARGIN = 20.0
CONTENT_WIDTH = 170.0
PAGE_CENTER = 105.0
VALUE_OFFSET = 50.0
ROW_HEIGHT = 10.0
LINE_HEIGHT = 6.0
BLOCK_PADDING = 4.0
BAND_HEIGHT = 14.0
SECTION_HEADER_HEIGHT = 20.0
SECTION_GAP = 10.0
INDENT = 10.0

# ─── Typography ──────────────────────────────────────────────────────────────

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
TITLE_FONT_SIZE = 20
HEADER_FONT_SIZE = 16
SUBHEADER_FONT_SIZE = 13
BODY_FONT_SIZE = 12
SMALL_FONT_SIZE = 10

# ─── Colours (RGB 0-255) ─────────────────────────────────────────────────────

TITLE_BAND = (200, 220, 255)
SECTION_BAND = (220, 235, 255)
TEXT_COLOR = (30, 41, 59)
MUTED_TEXT = (100, 116, 139)

Color = Tuple[int, int, int]


class TextOp(BaseModel):
    """A single line of text occupying [y, y + height]."""
    kind: Literal["text"] = "text"
    x: float
    y: float
    height: float
    text: str
    font_size: float = BODY_FONT_SIZE
    bold: bool = False
    align: Literal["left", "center"] = "left"
    color: Color = TEXT_COLOR


class RectOp(BaseModel):
    """A filled rectangle (header bands)."""
    kind: Literal["rect"] = "rect"
    x: float
    y: float
    width: float
    height: float
    color: Color


class ImageOp(BaseModel):
    """An image fitted into a fixed bounding box."""
    kind: Literal["image"] = "image"
    x: float
    y: float
    width: float
    height: float
    content: bytes


DrawOp = Union[TextOp, RectOp, ImageOp]


class Page(BaseModel):
    """Ordered draw operations of one page."""
    ops: List[DrawOp] = Field(default_factory=list)


class ComposedDocument(BaseModel):
    """Ordered pages produced by one composer invocation."""
    title: str = ""
    pages: List[Page] = Field(default_factory=list)

    def render(self) -> bytes:
        """Serialize to PDF bytes."""
        return render_pdf(self)


class LayoutCursor(BaseModel):
    """Running vertical position on the current page."""
    y: float = TOP_MARGIN
    page_height: float = PAGE_HEIGHT
    top_margin: float = TOP_MARGIN

    @property
    def usable_height(self) -> float:
        return self.page_height - self.top_margin


class FontPair(NamedTuple):
    regular: str
    bold: str


# The standard Type 1 fonts only cover Latin-1; a TrueType font is needed for
# anything else (accented names outside Latin-1, CJK, emoji).
_fonts = FontPair(FONT, FONT_BOLD)


def font_name(bold: bool = False) -> str:
    """Font currently used for body (or bold) text."""
    return _fonts.bold if bold else _fonts.regular


def register_fonts(regular_path: str, bold_path: Optional[str] = None) -> FontPair:
    """
    Switch rendering and text measurement to TrueType fonts.

    Args:
        regular_path: TTF file for body text
        bold_path: TTF file for bold text (defaults to the regular font)

    Returns:
        The registered font names
    """
    global _fonts
    regular = Path(regular_path).stem
    pdfmetrics.registerFont(TTFont(regular, regular_path))
    bold = regular
    if bold_path:
        bold = Path(bold_path).stem
        pdfmetrics.registerFont(TTFont(bold, bold_path))
    _fonts = FontPair(regular, bold)
    logger.info("PDF fonts registered", regular=regular, bold=bold)
    return _fonts


def reset_fonts() -> None:
    """Return to the built-in Helvetica pair."""
    global _fonts
    _fonts = FontPair(FONT, FONT_BOLD)


def wrap_text(text: str, width: float, font_size: float = BODY_FONT_SIZE, bold: bool = False) -> List[str]:
    """Split text into lines no wider than width (mm) using real font metrics."""
    lines = simpleSplit(text, font_name(bold), font_size, width * mm)
    return lines or [""]


class PageBuilder:
    """Layout context for one document: owns the cursor and the pages."""

    def __init__(self, start_y: float = TOP_MARGIN, page_height: float = PAGE_HEIGHT,
                 top_margin: float = TOP_MARGIN):
        self.cursor = LayoutCursor(y=start_y, page_height=page_height, top_margin=top_margin)
        self.pages: List[Page] = [Page()]
        self.page_breaks = 0

    @property
    def page_index(self) -> int:
        return len(self.pages) - 1

    @property
    def y(self) -> float:
        return self.cursor.y

    def ensure(self, extent: float) -> bool:
        """Start a new page if a block of this extent would overflow. Returns True on break."""
        if self.cursor.y + extent > self.cursor.page_height:
            self.pages.append(Page())
            self.cursor.y = self.cursor.top_margin
            self.page_breaks += 1
            return True
        return False

    def advance(self, dy: float) -> None:
        self.cursor.y += dy

    def move_to(self, y: float) -> None:
        """Move the cursor down to y; never moves it up."""
        self.cursor.y = max(self.cursor.y, y)

    def add(self, op: DrawOp) -> None:
        self.pages[-1].ops.append(op)

    # ─── Atomic blocks ───────────────────────────────────────────────────────

    def band(self, title: str, height: float = SECTION_HEADER_HEIGHT, band_height: float = BAND_HEIGHT,
             font_size: float = HEADER_FONT_SIZE, color: Color = SECTION_BAND,
             align: Literal["left", "center"] = "left") -> None:
        """Full-width filled band with a title, followed by breathing room."""
        self.ensure(height)
        top = self.cursor.y
        self.add(RectOp(x=LEFT_MARGIN, y=top, width=CONTENT_WIDTH, height=band_height, color=color))
        x = PAGE_CENTER if align == "center" else LEFT_MARGIN + 3
        self.add(TextOp(x=x, y=top, height=band_height, text=title, font_size=font_size,
                        bold=True, align=align))
        self.advance(height)

    def line(self, text: str, x: float = LEFT_MARGIN, font_size: float = BODY_FONT_SIZE,
             height: float = ROW_HEIGHT, bold: bool = False, align: Literal["left", "center"] = "left",
             color: Color = TEXT_COLOR) -> None:
        """A single unwrapped line of text."""
        self.ensure(height)
        self.add(TextOp(x=x, y=self.cursor.y, height=height, text=text, font_size=font_size,
                        bold=bold, align=align, color=color))
        self.advance(height)

    def paragraph(self, text: str, x: float = LEFT_MARGIN, width: float = CONTENT_WIDTH,
                  font_size: float = BODY_FONT_SIZE, bold: bool = False, color: Color = TEXT_COLOR) -> None:
        """Wrapped text kept on one page when it fits, split by line otherwise."""
        lines = wrap_text(text, width, font_size, bold)
        extent = len(lines) * LINE_HEIGHT + BLOCK_PADDING
        if extent <= self.cursor.usable_height:
            self.ensure(extent)
            self._draw_lines(lines, x, font_size, bold, color)
            self.advance(BLOCK_PADDING)
            return
        for text_line in lines:
            self.ensure(LINE_HEIGHT)
            self._draw_lines([text_line], x, font_size, bold, color)
        self.advance(BLOCK_PADDING)

    def field_row(self, label: str, value: str, x: float = LEFT_MARGIN,
                  value_offset: float = VALUE_OFFSET, value_width: Optional[float] = None,
                  font_size: float = BODY_FONT_SIZE) -> None:
        """"Label:" at x and the (possibly wrapped) value in the value column."""
        if value_width is None:
            value_width = LEFT_MARGIN + CONTENT_WIDTH - (x + value_offset)
        lines = wrap_text(value, value_width, font_size)
        extent = max(ROW_HEIGHT, len(lines) * LINE_HEIGHT + BLOCK_PADDING)
        if extent > self.cursor.usable_height:
            # Oversized value: label on its own row, value as a split paragraph
            self.line(f"{label}:", x=x, font_size=font_size, bold=True)
            self.paragraph(value, x=x + value_offset, width=value_width, font_size=font_size)
            return
        self.ensure(extent)
        top = self.cursor.y
        first_height = ROW_HEIGHT if len(lines) == 1 else LINE_HEIGHT
        self.add(TextOp(x=x, y=top, height=first_height, text=f"{label}:", font_size=font_size, bold=True))
        if len(lines) == 1:
            self.add(TextOp(x=x + value_offset, y=top, height=ROW_HEIGHT, text=lines[0], font_size=font_size))
        else:
            for index, text_line in enumerate(lines):
                self.add(TextOp(x=x + value_offset, y=top + index * LINE_HEIGHT, height=LINE_HEIGHT,
                                text=text_line, font_size=font_size))
        self.advance(extent)

    def image(self, content: bytes, x: float, width: float, height: float, advance: bool = True) -> float:
        """Reserve a fixed box and draw an image in it. Returns the box's bottom edge."""
        self.ensure(height)
        top = self.cursor.y
        self.add(ImageOp(x=x, y=top, width=width, height=height, content=content))
        if advance:
            self.advance(height)
        return top + height

    def gap(self, dy: float = SECTION_GAP) -> None:
        self.advance(dy)

    def _draw_lines(self, lines: List[str], x: float, font_size: float, bold: bool, color: Color) -> None:
        for text_line in lines:
            self.add(TextOp(x=x, y=self.cursor.y, height=LINE_HEIGHT, text=text_line,
                            font_size=font_size, bold=bold, color=color))
            self.advance(LINE_HEIGHT)

    def build(self, title: str = "") -> ComposedDocument:
        return ComposedDocument(title=title, pages=self.pages)


def image_size(content: bytes) -> Tuple[int, int]:
    """Pixel size of an image; raises if the bytes cannot be decoded."""
    return ImageReader(io.BytesIO(content)).getSize()


# ─── Rendering ───────────────────────────────────────────────────────────────

_PAGE_WIDTH_PT, _PAGE_HEIGHT_PT = A4


def _to_pt_y(y_mm: float) -> float:
    return _PAGE_HEIGHT_PT - y_mm * mm


def _rgb(color: Color) -> Tuple[float, float, float]:
    return color[0] / 255.0, color[1] / 255.0, color[2] / 255.0


def render_pdf(document: ComposedDocument) -> bytes:
    """
    Render a composed document with reportlab.

    The canvas runs in invariant mode (fixed creation date and file ID), so the
    same document always yields the same bytes.
    """
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
    pdf.setTitle(document.title)
    pdf.setCreator("clinic_reports")

    pages = document.pages or [Page()]
    for page in pages:
        for op in page.ops:
            if isinstance(op, RectOp):
                pdf.setFillColorRGB(*_rgb(op.color))
                pdf.rect(op.x * mm, _to_pt_y(op.y + op.height), op.width * mm, op.height * mm,
                         stroke=0, fill=1)
            elif isinstance(op, TextOp):
                pdf.setFillColorRGB(*_rgb(op.color))
                pdf.setFont(font_name(op.bold), op.font_size)
                # Vertically centre the glyphs inside the op's box
                baseline = _to_pt_y(op.y + op.height / 2) - op.font_size * 0.35
                if op.align == "center":
                    pdf.drawCentredString(op.x * mm, baseline, op.text)
                else:
                    pdf.drawString(op.x * mm, baseline, op.text)
            elif isinstance(op, ImageOp):
                pdf.drawImage(
                    ImageReader(io.BytesIO(op.content)),
                    op.x * mm,
                    _to_pt_y(op.y + op.height),
                    width=op.width * mm,
                    height=op.height * mm,
                    preserveAspectRatio=True,
                    anchor="nw",
                    mask="auto",
                )
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()
