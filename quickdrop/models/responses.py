"""Response bodies returned by the HTTP API."""

from datetime import datetime, timedelta
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .transfer import Transfer


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def to_ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadReceipt(ApiModel):
    code: str
    file_count: int
    total_size: int
    expires_at: int  # epoch ms

    @classmethod
    def from_transfer(cls, transfer: Transfer) -> "UploadReceipt":
        return cls(
            code=transfer.code,
            file_count=len(transfer.files),
            total_size=transfer.total_size,
            expires_at=to_epoch_ms(transfer.expires_at),
        )


class FileInfo(ApiModel):
    id: str
    name: str
    size: int


class TransferInfo(ApiModel):
    code: str
    files: list[FileInfo]
    expires_at: int  # epoch ms
    remaining_time: int  # ms

    @classmethod
    def from_transfer(cls, transfer: Transfer, now: datetime) -> "TransferInfo":
        return cls(
            code=transfer.code,
            files=[FileInfo(id=f.id, name=f.display_name, size=f.size) for f in transfer.files],
            expires_at=to_epoch_ms(transfer.expires_at),
            remaining_time=to_ms(transfer.remaining(now)),
        )


class DeleteReceipt(ApiModel):
    code: str
    deleted: bool = True


class HealthStatus(ApiModel):
    status: str = "ok"
    timestamp: str
    active_transfers: int = 0
