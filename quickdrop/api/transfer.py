"""Transfer lookup and deletion endpoints."""

from fastapi import APIRouter, Depends

from ..models.responses import DeleteReceipt, TransferInfo
from ..services.transfer_service import TransferService
from .deps import get_transfer_service

router = APIRouter(prefix="/transfer", tags=["transfer"])


@router.get("/{code}", response_model=TransferInfo)
async def get_transfer(code: str, service: TransferService = Depends(get_transfer_service)):
    return await service.get_transfer_info(code)


@router.delete("/{code}", response_model=DeleteReceipt)
async def delete_transfer(code: str, service: TransferService = Depends(get_transfer_service)):
    await service.delete_transfer(code)
    return DeleteReceipt(code=code)
