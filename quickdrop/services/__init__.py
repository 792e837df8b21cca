"""Transfer registry, expiry and the service façade."""

from .registry import TransferRegistry
from .transfer_service import IncomingFile, TransferService

__all__ = ["IncomingFile", "TransferRegistry", "TransferService"]
