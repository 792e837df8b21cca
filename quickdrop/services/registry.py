"""In-memory transfer registry and purge protocol.

The registry exclusively owns transfer metadata. Every read-then-write of the
code map happens under one lock that is never held across an await or blob
I/O. Purging a code is exactly-once: the caller that pops the entry from the
map deletes the blobs, any other caller sees it gone and returns.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from ..config import EXPIRY_TIME, MAX_FILES, MAX_TOTAL_SIZE
from ..errors import (
    EmptyUpload,
    FileNotFound,
    StorageError,
    TooManyFiles,
    TotalSizeExceeded,
    TransferExpired,
    TransferNotFound,
)
from ..models.transfer import FileRecord, Transfer
from ..storage.blob_store import BlobStore
from .code_generator import generate_code
from .expiry_scheduler import ExpiryScheduler

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TransferRegistry:
    def __init__(
        self,
        blob_store: BlobStore,
        ttl: timedelta = EXPIRY_TIME,
        max_files: int = MAX_FILES,
        max_total_size: int = MAX_TOTAL_SIZE,
        clock: Callable[[], datetime] = utcnow,
        code_generator: Callable[[Callable[[str], bool]], str] = generate_code,
    ):
        self.blob_store = blob_store
        self.ttl = ttl
        self.max_files = max_files
        self.max_total_size = max_total_size
        self.now = clock
        self._generate_code = code_generator
        self._transfers: dict[str, Transfer] = {}
        self._lock = threading.Lock()
        self._scheduler = ExpiryScheduler(self._on_timer)

    def __len__(self) -> int:
        return len(self._transfers)

    def __contains__(self, code: str) -> bool:
        return code in self._transfers

    @property
    def scheduler(self) -> ExpiryScheduler:
        return self._scheduler

    def validate(self, files: Sequence[FileRecord]) -> None:
        if not files:
            raise EmptyUpload()
        if len(files) > self.max_files:
            raise TooManyFiles(self.max_files)
        if sum(f.size for f in files) > self.max_total_size:
            raise TotalSizeExceeded(self.max_total_size)

    def create(self, files: Sequence[FileRecord]) -> Transfer:
        """Register a batch whose blobs are already written. Must run on the event loop."""
        self.validate(files)
        created_at = self.now()
        with self._lock:
            code = self._generate_code(self._transfers.__contains__)
            transfer = Transfer(
                code=code,
                files=tuple(files),
                created_at=created_at,
                expires_at=created_at + self.ttl,
            )
            self._transfers[code] = transfer
            self._scheduler.arm(code, self.ttl.total_seconds())

        logger.info(
            f"Transfer created: {code}, {len(transfer.files)} files, "
            f"expires at {transfer.expires_at.isoformat()}"
        )
        return transfer

    async def get(self, code: str) -> Transfer:
        now = self.now()
        with self._lock:
            transfer = self._transfers.get(code)
            if transfer is None:
                raise TransferNotFound()
            if not transfer.is_expired(now):
                return transfer
            self._detach(code)

        await self._discard(transfer, "expired on read")
        raise TransferExpired()

    async def resolve_file(self, code: str, file_id: str) -> FileRecord:
        transfer = await self.get(code)
        record = transfer.find_file(file_id)
        if record is None:
            raise FileNotFound()
        return record

    async def purge(self, code: str, reason: str = "request") -> bool:
        """Remove a transfer and its blobs. Returns False if it was already gone."""
        with self._lock:
            transfer = self._detach(code)
        if transfer is None:
            return False
        await self._discard(transfer, reason)
        return True

    async def close(self) -> None:
        """Cancel all timers and purge every live transfer."""
        with self._lock:
            self._scheduler.cancel_all()
            transfers = list(self._transfers.values())
            self._transfers.clear()
        for transfer in transfers:
            await self._discard(transfer, "shutdown")

    def _detach(self, code: str) -> Optional[Transfer]:
        # Caller holds the lock
        transfer = self._transfers.pop(code, None)
        if transfer is not None:
            self._scheduler.disarm(code)
        return transfer

    async def _discard(self, transfer: Transfer, reason: str) -> None:
        for record in transfer.files:
            try:
                await run_in_threadpool(self.blob_store.delete, record.storage_key)
            except StorageError as e:
                logger.warning(f"Transfer {transfer.code}: {e}")
        logger.info(f"Transfer {transfer.code} cleaned up ({reason})")

    async def _on_timer(self, code: str) -> None:
        await self.purge(code, "timer")
