from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest

from quickdrop.models.transfer import FileRecord
from quickdrop.services.registry import TransferRegistry
from quickdrop.services.transfer_service import IncomingFile, TransferService
from quickdrop.storage.blob_store import BlobStore, make_storage_key


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class CountingBlobStore(BlobStore):
    """BlobStore that records every delete attempt."""

    def __init__(self, root):
        super().__init__(root)
        self.delete_calls: list[str] = []

    def delete(self, storage_key: str) -> bool:
        self.delete_calls.append(storage_key)
        return super().delete(storage_key)


def store_files(blob_store: BlobStore, files: dict[str, bytes]) -> list[FileRecord]:
    records = []
    for name, data in files.items():
        key, size = blob_store.put(BytesIO(data), len(data), make_storage_key(name))
        records.append(FileRecord(display_name=name, storage_key=key, size=size))
    return records


def incoming(files: dict[str, bytes]) -> list[IncomingFile]:
    return [IncomingFile(filename=name, stream=BytesIO(data), content_type="text/plain") for name, data in files.items()]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blob_store(tmp_path):
    return CountingBlobStore(tmp_path / "uploads")


@pytest.fixture
def registry(blob_store, clock):
    return TransferRegistry(blob_store, clock=clock)


@pytest.fixture
def service(registry, blob_store):
    return TransferService(registry, blob_store)
