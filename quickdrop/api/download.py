"""File and archive download endpoints."""

from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..services.transfer_service import TransferService
from .deps import get_transfer_service

router = APIRouter(tags=["download"])


def content_disposition(filename: str) -> str:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "_").replace("?", "_")
    if fallback == filename:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/download/{code}/{file_id}")
async def download_file(
    code: str,
    file_id: str,
    service: TransferService = Depends(get_transfer_service),
):
    download = await service.download_file(code, file_id)
    record = download.record
    return StreamingResponse(
        download.chunks,
        media_type=record.content_type,
        headers={
            "Content-Disposition": content_disposition(record.display_name),
            "Content-Length": str(record.size),
        },
    )


@router.get("/download-all/{code}")
async def download_all(code: str, service: TransferService = Depends(get_transfer_service)):
    archive = await service.download_archive(code)
    return StreamingResponse(
        archive.chunks,
        media_type="application/zip",
        headers={"Content-Disposition": content_disposition(archive.filename)},
    )
