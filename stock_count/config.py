from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Counting settings loaded from `STOCK_COUNT_*` environment variables."""

    DEFAULT_COUNTER_NAME: str = "Unknown"  # Recorded when no counter identity is set
    PREVIEW_ROWS: int = 5  # Rows shown in the import preview
    PAGE_SIZE: int = 1000  # Records fetched per backend page on load
    EXPORT_DIR: Path = Path("output")
    LOG_LEVEL: str = "INFO"

    @field_validator("PREVIEW_ROWS", "PAGE_SIZE")
    @classmethod
    def check_positive(cls, v):
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v):
        return v.strip().upper()

    class Config:
        env_prefix = "STOCK_COUNT_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
