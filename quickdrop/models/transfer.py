"""Transfer and file record models held by the registry."""

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


class FileRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    display_name: str  # client-supplied, never used for paths
    storage_key: str
    size: int = Field(ge=0)
    content_type: str = "application/octet-stream"


class Transfer(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    files: tuple[FileRecord, ...]
    created_at: datetime
    expires_at: datetime

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def remaining(self, now: datetime) -> timedelta:
        return max(self.expires_at - now, timedelta(0))

    def find_file(self, file_id: str) -> Optional[FileRecord]:
        return next((f for f in self.files if f.id == file_id), None)
