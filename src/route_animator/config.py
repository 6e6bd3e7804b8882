from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ROUTE_ANIMATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    upload_folder: Path = Path.cwd() / "uploads"
    export_folder: Path = Path.cwd() / "exports"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    encode_timeout_s: float = 600.0

    # Export workers
    export_workers: int = 2
    render_threads: int = 2

    # Job retention
    job_max_age_ms: int = 24 * 60 * 60 * 1000
    cleanup_interval_s: float = 60 * 60

    # Remote background images
    fetch_timeout_s: float = 10.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
