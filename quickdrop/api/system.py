"""Health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..models.responses import HealthStatus
from ..services.transfer_service import TransferService
from .deps import get_transfer_service

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthStatus)
async def health(service: TransferService = Depends(get_transfer_service)):
    return HealthStatus(
        timestamp=datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        active_transfers=service.active_transfers(),
    )
