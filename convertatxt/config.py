from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), env_prefix="CONVERTATXT_")

    batch_size: int = 5
    timeout_ms: int = 30_000
    ocr_language: str = "eng"
    tesseract_cmd: str | None = None
    log_dir: Path = Path("./audit-logs")
    audit_enabled: bool = True
    archive_name: str = "converted_files.zip"
    single_name: str = "converted.txt"

    @field_validator("batch_size", "timeout_ms")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            msg = "batch_size and timeout_ms must be positive"
            raise ValueError(msg)
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


settings = Settings()


__all__ = ["Settings", "settings"]
