"""Attachment storage backends."""
from clinic_reports.storage.blob_store import (
    BlobStore,
    BlobStoreError,
    SupabaseBlobStore,
    get_blob_store,
    close_blob_store,
)

__all__ = ["BlobStore", "BlobStoreError", "SupabaseBlobStore", "get_blob_store", "close_blob_store"]
