"""Streaming zip builder for download-all."""

import io
import logging
import zipfile
from pathlib import PurePosixPath
from typing import Iterable, Iterator

from ..config import CHUNK_SIZE
from ..errors import ArchiveError, BlobNotFound
from ..models.transfer import FileRecord
from ..storage.blob_store import BlobStore

logger = logging.getLogger(__name__)


class _StreamSink(io.RawIOBase):
    """Non-seekable write target; zipfile falls back to data descriptors."""

    def __init__(self):
        self._chunks: list[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        self._chunks.append(bytes(b))
        return len(b)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


def entry_name(display_name: str, taken: set[str]) -> str:
    """Flatten a display name to one archive entry, suffixing duplicates."""
    name = PurePosixPath(display_name.replace("\\", "/")).name or "file"
    if name in (".", ".."):
        name = "file"
    candidate = name
    n = 1
    while candidate in taken:
        path = PurePosixPath(name)
        candidate = f"{path.stem} ({n}){path.suffix}"
        n += 1
    taken.add(candidate)
    return candidate


def iter_zip(
    blob_store: BlobStore,
    files: Iterable[FileRecord],
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield a zip of the given files as it is produced.

    Files whose blob is missing are skipped. Any other failure raises
    ArchiveError; bytes already yielded cannot be taken back.
    """
    sink = _StreamSink()
    taken: set[str] = set()
    try:
        with zipfile.ZipFile(sink, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for record in files:
                try:
                    source = blob_store.open_read(record.storage_key)
                except BlobNotFound:
                    logger.warning(f"Skipping {record.display_name!r}: blob {record.storage_key} is missing")
                    continue
                with source, zf.open(entry_name(record.display_name, taken), "w") as dest:
                    while True:
                        chunk = source.read(chunk_size)
                        if not chunk:
                            break
                        dest.write(chunk)
                        data = sink.drain()
                        if data:
                            yield data
                data = sink.drain()
                if data:
                    yield data
    except Exception as e:
        logger.error(f"Archive error: {e}")
        raise ArchiveError() from e

    data = sink.drain()
    if data:
        yield data
