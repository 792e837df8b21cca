"""Upload API endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from ..errors import EmptyUpload
from ..models.responses import UploadReceipt
from ..services.transfer_service import IncomingFile, TransferService
from .deps import get_transfer_service

router = APIRouter(tags=["upload"])


@router.post("/upload", response_model=UploadReceipt)
async def upload_files(
    files: Optional[list[UploadFile]] = File(None),
    service: TransferService = Depends(get_transfer_service),
):
    if not files:
        raise EmptyUpload()

    incoming = [
        IncomingFile(filename=f.filename, stream=f.file, content_type=f.content_type)
        for f in files
    ]
    return await service.create_transfer(incoming)
