"""Write-once blob storage on the local filesystem.

Each uploaded file is stored as one payload file under the uploads
directory, named by a server-generated storage key. The store never decides
when to delete anything; the registry does.
"""

import logging
import re
import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import CHUNK_SIZE
from ..errors import BlobNotFound, CapacityExceeded, StorageError

logger = logging.getLogger(__name__)

_SUFFIX_RE = re.compile(r"^\.[a-z0-9]{1,10}$")
_KEY_RE = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,10})?$")


def make_storage_key(display_name: str = "") -> str:
    """Random key, keeping a short alphanumeric extension of the display name."""
    suffix = Path(display_name).suffix.lower() if display_name else ""
    if not _SUFFIX_RE.match(suffix):
        suffix = ""
    return f"{uuid.uuid4().hex}{suffix}"


class BlobStore:
    def __init__(self, root: Path, chunk_size: int = CHUNK_SIZE):
        self.root = Path(root)
        self.chunk_size = chunk_size
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_key: str) -> Path:
        if not _KEY_RE.match(storage_key):
            raise BlobNotFound()
        return self.root / storage_key

    def put(
        self,
        stream: BinaryIO,
        size_limit: int,
        storage_key: Optional[str] = None,
    ) -> tuple[str, int]:
        """Persist a stream under a new key. Returns (storage_key, size).

        Callers that must be able to roll the write back choose the key up
        front with make_storage_key().
        """
        storage_key = storage_key or make_storage_key()
        path = self._path(storage_key)
        written = 0
        try:
            with open(path, "xb") as f:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > size_limit:
                        raise CapacityExceeded()
                    f.write(chunk)
        except CapacityExceeded:
            path.unlink(missing_ok=True)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            logger.warning(f"Failed to write blob {storage_key}: {e}")
            raise StorageError() from e
        except BaseException:
            # Cancelled mid-write
            path.unlink(missing_ok=True)
            raise

        logger.debug(f"Stored blob {storage_key} ({written} bytes)")
        return storage_key, written

    def open_read(self, storage_key: str) -> BinaryIO:
        try:
            return open(self._path(storage_key), "rb")
        except FileNotFoundError as e:
            raise BlobNotFound() from e
        except OSError as e:
            logger.warning(f"Failed to open blob {storage_key}: {e}")
            raise StorageError() from e

    def delete(self, storage_key: str) -> bool:
        """Remove a blob. Returns False if it was already absent."""
        try:
            self._path(storage_key).unlink()
        except (FileNotFoundError, BlobNotFound):
            return False
        except OSError as e:
            logger.warning(f"Failed to delete blob {storage_key}: {e}")
            raise StorageError() from e
        logger.debug(f"Deleted blob {storage_key}")
        return True

    def keys(self) -> list[str]:
        """Storage keys currently on disk."""
        return sorted(p.name for p in self.root.iterdir() if p.is_file() and _KEY_RE.match(p.name))
