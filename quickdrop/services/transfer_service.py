"""Operations called by the HTTP layer."""

import asyncio
import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from ..config import CHUNK_SIZE
from ..errors import (
    BlobNotFound,
    CapacityExceeded,
    EmptyUpload,
    FileNotFound,
    StorageError,
    TooManyFiles,
    TotalSizeExceeded,
    TransferNotFound,
)
from ..models.responses import TransferInfo, UploadReceipt
from ..models.transfer import FileRecord
from ..storage.blob_store import BlobStore, make_storage_key
from .archive import iter_zip
from .registry import TransferRegistry

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    filename: Optional[str]
    stream: BinaryIO
    content_type: Optional[str] = None


@dataclass
class FileDownload:
    record: FileRecord
    chunks: Iterator[bytes]


@dataclass
class ArchiveDownload:
    filename: str
    chunks: Iterator[bytes]


def iter_blob(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    with source:
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            yield chunk


class TransferService:
    def __init__(self, registry: TransferRegistry, blob_store: BlobStore):
        self.registry = registry
        self.blob_store = blob_store

    async def create_transfer(self, uploads: Sequence[IncomingFile]) -> UploadReceipt:
        if not uploads:
            raise EmptyUpload()
        if len(uploads) > self.registry.max_files:
            raise TooManyFiles(self.registry.max_files)

        records: list[FileRecord] = []
        # Keys are chosen before each write so a rollback can reach blobs still being written
        storage_keys: list[str] = []
        remaining = self.registry.max_total_size
        try:
            for upload in uploads:
                storage_keys.append(make_storage_key(upload.filename or ""))
                try:
                    storage_key, size = await self._store(upload.stream, remaining, storage_keys[-1])
                except CapacityExceeded as e:
                    raise TotalSizeExceeded(self.registry.max_total_size) from e
                records.append(FileRecord(
                    display_name=upload.filename or "unnamed",
                    storage_key=storage_key,
                    size=size,
                    content_type=upload.content_type or "application/octet-stream",
                ))
                remaining -= size
            transfer = self.registry.create(records)
        except BaseException:
            self._rollback(storage_keys)
            raise

        return UploadReceipt.from_transfer(transfer)

    async def get_transfer_info(self, code: str) -> TransferInfo:
        transfer = await self.registry.get(code)
        return TransferInfo.from_transfer(transfer, self.registry.now())

    async def download_file(self, code: str, file_id: str) -> FileDownload:
        record = await self.registry.resolve_file(code, file_id)
        try:
            source = await run_in_threadpool(self.blob_store.open_read, record.storage_key)
        except BlobNotFound:
            logger.warning(f"Transfer {code}: blob for file {file_id} is missing")
            raise FileNotFound("File not found on server")
        return FileDownload(record=record, chunks=iter_blob(source))

    async def download_archive(self, code: str) -> ArchiveDownload:
        transfer = await self.registry.get(code)
        return ArchiveDownload(
            filename=f"transfer-{code}.zip",
            chunks=iter_zip(self.blob_store, transfer.files),
        )

    async def delete_transfer(self, code: str) -> None:
        if not await self.registry.purge(code, "request"):
            raise TransferNotFound()

    def active_transfers(self) -> int:
        return len(self.registry)

    async def _store(self, stream: BinaryIO, size_limit: int, storage_key: str) -> tuple[str, int]:
        write = asyncio.ensure_future(
            run_in_threadpool(self.blob_store.put, stream, size_limit, storage_key)
        )
        try:
            return await asyncio.shield(write)
        except asyncio.CancelledError:
            # The worker thread keeps writing after cancellation; let it finish before rollback
            await asyncio.wait([write])
            if not write.cancelled():
                write.exception()  # retrieved, the cancellation wins
            raise

    def _rollback(self, storage_keys: Sequence[str]) -> None:
        # Synchronous so it still runs when the upload task is being cancelled
        removed = 0
        for storage_key in storage_keys:
            try:
                removed += self.blob_store.delete(storage_key)
            except StorageError as e:
                logger.warning(f"Rollback of blob {storage_key} failed: {e}")
        if removed:
            logger.info(f"Rolled back {removed} uploaded files")
