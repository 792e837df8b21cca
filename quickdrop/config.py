"""Application settings."""

from datetime import timedelta
from pathlib import Path
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

MAX_FILES = 10
MAX_TOTAL_SIZE = 200 * 1024 * 1024  # 200MB
EXPIRY_TIME = timedelta(minutes=10)
CODE_MIN = 100000
CODE_MAX = 999999
CHUNK_SIZE = 64 * 1024


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    # PORT and UPLOADS_DIR are also read unprefixed
    port: int = Field(3001, validation_alias=AliasChoices("QUICKDROP_PORT", "PORT"))
    debug: bool = False
    uploads_dir: Path = Field(
        Path.cwd() / "uploads",
        validation_alias=AliasChoices("QUICKDROP_UPLOADS_DIR", "UPLOADS_DIR"),
    )
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = {"env_prefix": "QUICKDROP_"}


settings = Settings()
