"""Appends embeddable sub-documents after the composed pages."""

import io
from typing import List, Protocol

from pypdf import PdfReader, PdfWriter

from clinic_reports.config.logging_config import get_logger
from clinic_reports.reporting.exceptions import SubDocumentMergeFailure
from clinic_reports.reporting.layout import ComposedDocument

logger = get_logger(__name__)


class DocumentMerger(Protocol):
    """Capability boundary between composition and cross-document concatenation."""

    def merge(self, primary: ComposedDocument, extras: List[bytes]) -> bytes:
        ...


def _load(content: bytes) -> PdfReader:
    """Parse a sub-document fully so failures surface before any page is appended.

    Pages are copied into a scratch writer first: broken object references only
    show up when a page tree is walked, and a failed append would otherwise
    leave part of the document in the output.
    """
    try:
        reader = PdfReader(io.BytesIO(content))
        if reader.is_encrypted and not reader.decrypt(""):
            raise SubDocumentMergeFailure("encrypted with a password")
        if len(reader.pages) == 0:
            raise SubDocumentMergeFailure("document has no pages")
        PdfWriter().append(reader)
    except SubDocumentMergeFailure:
        raise
    except Exception as e:
        raise SubDocumentMergeFailure(str(e)) from e
    return reader


class PdfDocumentMerger:
    """pypdf-backed merger: primary pages first, then each extra in enqueue order."""

    def merge(self, primary: ComposedDocument, extras: List[bytes]) -> bytes:
        """
        Merge the composed document with queued PDF byte streams.

        Args:
            primary: Composed report pages
            extras: Embeddable sub-documents in the order they were enqueued

        Returns:
            Serialized PDF; the primary render unchanged when nothing was appended
        """
        primary_bytes = primary.render()
        if not extras:
            return primary_bytes

        readers = []
        for index, content in enumerate(extras):
            try:
                readers.append(_load(content))
            except SubDocumentMergeFailure as e:
                logger.warning("Skipping sub-document that failed to load", index=index, error=str(e))

        if not readers:
            return primary_bytes

        writer = PdfWriter()
        writer.append(PdfReader(io.BytesIO(primary_bytes)))
        appended = 0
        for index, reader in enumerate(readers):
            try:
                writer.append(reader)
            except Exception as e:
                logger.warning("Skipping sub-document that failed to merge", index=index, error=str(e))
                continue
            appended += 1

        if not appended:
            return primary_bytes

        output = io.BytesIO()
        writer.write(output)
        logger.info(
            "Merged sub-documents",
            appended=appended,
            skipped=len(extras) - appended,
            pages=len(writer.pages),
        )
        return output.getvalue()
