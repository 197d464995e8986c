"""Fetches referenced files and classifies them by MIME type.

Resolution never raises: every failure (signing, network, non-2xx, timeout)
becomes an UNAVAILABLE result so the composer can draw a placeholder.
"""

import asyncio
from typing import Dict, List, Optional
from urllib.parse import unquote

from clinic_reports.config.settings import Settings, get_settings
from clinic_reports.config.logging_config import get_logger
from clinic_reports.models import AttachmentClassification, AttachmentReference, ResolvedAttachment
from clinic_reports.reporting.exceptions import AttachmentUnavailable
from clinic_reports.storage.blob_store import BlobStore, get_blob_store

logger = get_logger(__name__)


def storage_path(url: str, bucket: str) -> str:
    """Object path inside the bucket: whatever follows the first "<bucket>/" segment.

    Public URLs carry the path percent-encoded; the store encodes it again when
    signing, so the path is returned decoded.
    """
    marker = f"{bucket}/"
    if marker in url:
        path = url.split(marker, 1)[1]
        path = path.split("?", 1)[0]
        if path:
            return unquote(path)
    return unquote(url)


def classify(mime_type: str) -> AttachmentClassification:
    """Map a MIME type to the composer's handling class."""
    base = (mime_type or "").split(";", 1)[0].strip().lower()
    if base.startswith("image/"):
        return AttachmentClassification.IMAGE
    if base == "application/pdf":
        return AttachmentClassification.EMBEDDABLE_PDF
    return AttachmentClassification.UNSUPPORTED


class AttachmentResolver:
    """Resolves AttachmentReferences through a BlobStore, one attempt each."""

    def __init__(self, blob_store: Optional[BlobStore] = None, settings: Optional[Settings] = None):
        self._blob_store = blob_store
        self.settings = settings or get_settings()

    @property
    def blob_store(self) -> BlobStore:
        """The injected store, or the current process-wide one.

        The shared store is looked up on every use so a resolver outlives
        close_blob_store() across application restarts.
        """
        if self._blob_store is not None:
            return self._blob_store
        return get_blob_store(self.settings)

    async def _fetch(self, ref: AttachmentReference, bucket: str) -> ResolvedAttachment:
        path = storage_path(ref.url, bucket)
        try:
            store = self.blob_store
            signed_url = await store.sign_url(bucket, path, self.settings.signed_url_ttl_seconds)
            content, mime_type = await store.fetch(signed_url)
        except Exception as e:
            raise AttachmentUnavailable(f"{bucket}/{path}: {e}") from e
        return ResolvedAttachment(
            content=content,
            mime_type=mime_type,
            classification=classify(mime_type),
        )

    async def resolve(self, ref: AttachmentReference, bucket: Optional[str] = None) -> ResolvedAttachment:
        """
        Fetch and classify a single attachment.

        Args:
            ref: Reference carried by a record
            bucket: Bucket to resolve against (defaults to the reference's hint)

        Returns:
            ResolvedAttachment; UNAVAILABLE on any failure
        """
        bucket = bucket or ref.bucket_hint
        try:
            resolved = await self._fetch(ref, bucket)
        except AttachmentUnavailable as e:
            logger.warning("Attachment unavailable", bucket=bucket, error=str(e))
            return ResolvedAttachment.unavailable()

        logger.debug(
            "Attachment resolved",
            bucket=bucket,
            mime_type=resolved.mime_type,
            classification=resolved.classification.value,
            size_bytes=len(resolved.content),
        )
        return resolved

    async def resolve_many(
        self,
        refs: List[AttachmentReference],
        budget_seconds: Optional[float] = None,
    ) -> Dict[AttachmentReference, ResolvedAttachment]:
        """
        Resolve references concurrently within one wall-clock budget.

        Duplicate references are fetched once. Fetches still running when the
        budget runs out are cancelled and reported as UNAVAILABLE.

        Returns:
            Mapping from reference to result, iterating in input order
        """
        unique = list(dict.fromkeys(refs))
        if not unique:
            return {}

        budget = self.settings.attachment_fetch_budget_seconds if budget_seconds is None else budget_seconds
        tasks = [asyncio.create_task(self.resolve(ref)) for ref in unique]
        done, pending = await asyncio.wait(tasks, timeout=budget)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Attachment fetch budget exceeded",
                budget_seconds=budget,
                unresolved=len(pending),
                total=len(unique),
            )

        results: Dict[AttachmentReference, ResolvedAttachment] = {}
        for ref, task in zip(unique, tasks):
            if task in done and not task.cancelled() and task.exception() is None:
                results[ref] = task.result()
            else:
                results[ref] = ResolvedAttachment.unavailable()
        return results
