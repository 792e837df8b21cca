"""On-disk payload storage."""

from .blob_store import BlobStore

__all__ = ["BlobStore"]
