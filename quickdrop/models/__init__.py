"""Data models."""

from .transfer import FileRecord, Transfer
from .responses import DeleteReceipt, FileInfo, HealthStatus, TransferInfo, UploadReceipt

__all__ = [
    "FileRecord",
    "Transfer",
    "DeleteReceipt",
    "FileInfo",
    "HealthStatus",
    "TransferInfo",
    "UploadReceipt",
]
