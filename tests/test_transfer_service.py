import asyncio
import threading
import zipfile
from datetime import timedelta
from io import BytesIO

import pytest

from quickdrop.errors import (
    FileNotFound,
    StorageError,
    TooManyFiles,
    TotalSizeExceeded,
    TransferExpired,
    TransferNotFound,
)
from quickdrop.services.registry import TransferRegistry
from quickdrop.services.transfer_service import IncomingFile, TransferService

from conftest import incoming


class BlockingStream:
    """Stream whose first read waits until released from the test."""

    def __init__(self, data: bytes):
        self.data = data
        self.started = threading.Event()
        self.release = threading.Event()

    def read(self, size=-1):
        if not self.started.is_set():
            self.started.set()
            self.release.wait(5)
            return self.data
        return b""


class FailingStream:
    def read(self, size=-1):
        raise OSError("client went away")


def read_zip(chunks) -> zipfile.ZipFile:
    return zipfile.ZipFile(BytesIO(b"".join(chunks)))


@pytest.fixture
def small_service(blob_store, clock):
    registry = TransferRegistry(blob_store, max_files=3, max_total_size=100, clock=clock)
    return TransferService(registry, blob_store)


class TestCreateTransfer:
    @pytest.mark.asyncio
    async def test_receipt(self, service, clock):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello", "b.txt": b"0123456789"}))

        assert receipt.file_count == 2
        assert receipt.total_size == 15
        assert receipt.expires_at == int((clock() + timedelta(minutes=10)).timestamp() * 1000)

    @pytest.mark.asyncio
    async def test_too_many_files_writes_nothing(self, small_service, blob_store):
        files = {f"{i}.txt": b"x" for i in range(4)}
        with pytest.raises(TooManyFiles):
            await small_service.create_transfer(incoming(files))

        assert blob_store.keys() == []
        assert len(small_service.registry) == 0

    @pytest.mark.asyncio
    async def test_oversized_batch_is_rolled_back(self, small_service, blob_store):
        with pytest.raises(TotalSizeExceeded):
            await small_service.create_transfer(incoming({"a.bin": b"x" * 60, "b.bin": b"y" * 41}))

        assert blob_store.keys() == []
        assert len(small_service.registry) == 0

    @pytest.mark.asyncio
    async def test_batch_at_limit_is_accepted(self, small_service):
        receipt = await small_service.create_transfer(incoming({"a.bin": b"x" * 60, "b.bin": b"y" * 40}))
        assert receipt.total_size == 100
        small_service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_broken_stream_rolls_back_siblings(self, service, blob_store):
        uploads = incoming({"a.txt": b"hello"}) + [IncomingFile(filename="b.txt", stream=FailingStream())]
        with pytest.raises(StorageError):
            await service.create_transfer(uploads)

        assert blob_store.keys() == []
        assert len(service.registry) == 0

    @pytest.mark.asyncio
    async def test_cancel_mid_write_removes_all_blobs(self, service, blob_store):
        slow = BlockingStream(b"second file")
        uploads = incoming({"a.txt": b"hello"}) + [IncomingFile(filename="b.txt", stream=slow)]

        task = asyncio.create_task(service.create_transfer(uploads))
        assert await asyncio.to_thread(slow.started.wait, 5)
        assert len(blob_store.keys()) == 2

        task.cancel()
        await asyncio.sleep(0.05)
        slow.release.set()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert blob_store.keys() == []
        assert len(service.registry) == 0

    @pytest.mark.asyncio
    async def test_concurrent_creates_are_isolated(self, service):
        first, second = await asyncio.gather(
            service.create_transfer(incoming({"a.txt": b"first"})),
            service.create_transfer(incoming({"b.txt": b"second", "c.txt": b"third"})),
        )

        assert first.code != second.code
        one = await service.get_transfer_info(first.code)
        two = await service.get_transfer_info(second.code)
        assert [f.name for f in one.files] == ["a.txt"]
        assert [f.name for f in two.files] == ["b.txt", "c.txt"]
        service.registry.scheduler.cancel_all()


class TestRetrieval:
    @pytest.mark.asyncio
    async def test_round_trip(self, service):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello", "b.txt": b"0123456789"}))
        info = await service.get_transfer_info(receipt.code)

        downloads = {}
        for f in info.files:
            download = await service.download_file(receipt.code, f.id)
            downloads[download.record.display_name] = b"".join(download.chunks)
        assert downloads == {"a.txt": b"hello", "b.txt": b"0123456789"}

        archive = await service.download_archive(receipt.code)
        assert archive.filename == f"transfer-{receipt.code}.zip"
        with read_zip(archive.chunks) as zf:
            assert zf.namelist() == ["a.txt", "b.txt"]
            assert [i.file_size for i in zf.infolist()] == [5, 10]
            assert zf.read("b.txt") == b"0123456789"
        service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_info_remaining_time(self, service, clock):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello"}))

        first = await service.get_transfer_info(receipt.code)
        clock.advance(seconds=30)
        second = await service.get_transfer_info(receipt.code)

        assert first.remaining_time == 600000
        assert second.remaining_time == 570000
        assert second.expires_at == receipt.expires_at
        service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_expired_transfer(self, service, clock, blob_store):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello"}))
        clock.advance(minutes=10, milliseconds=1)

        with pytest.raises(TransferExpired):
            await service.download_archive(receipt.code)
        with pytest.raises(TransferNotFound):
            await service.get_transfer_info(receipt.code)
        assert blob_store.keys() == []

    @pytest.mark.asyncio
    async def test_missing_blob_on_single_download(self, service, blob_store):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello"}))
        record = (await service.registry.get(receipt.code)).files[0]
        blob_store.delete(record.storage_key)

        with pytest.raises(FileNotFound):
            await service.download_file(receipt.code, record.id)
        service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_archive_skips_missing_blobs(self, service, blob_store):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello", "b.txt": b"world"}))
        record = (await service.registry.get(receipt.code)).files[0]
        blob_store.delete(record.storage_key)

        archive = await service.download_archive(receipt.code)
        with read_zip(archive.chunks) as zf:
            assert zf.namelist() == ["b.txt"]
        service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_archive_disambiguates_names(self, service):
        uploads = [
            IncomingFile(filename="notes.txt", stream=BytesIO(b"one")),
            IncomingFile(filename="notes.txt", stream=BytesIO(b"two")),
            IncomingFile(filename="../../notes.txt", stream=BytesIO(b"three")),
        ]
        receipt = await service.create_transfer(uploads)

        archive = await service.download_archive(receipt.code)
        with read_zip(archive.chunks) as zf:
            assert zf.namelist() == ["notes.txt", "notes (1).txt", "notes (2).txt"]
            assert zf.read("notes (2).txt") == b"three"
        service.registry.scheduler.cancel_all()

    @pytest.mark.asyncio
    async def test_delete_transfer(self, service, blob_store):
        receipt = await service.create_transfer(incoming({"a.txt": b"hello"}))

        await service.delete_transfer(receipt.code)

        assert blob_store.keys() == []
        with pytest.raises(TransferNotFound):
            await service.delete_transfer(receipt.code)
        with pytest.raises(TransferNotFound):
            await service.get_transfer_info(receipt.code)
