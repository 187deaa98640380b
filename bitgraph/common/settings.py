# bitgraph/common/settings.py
from __future__ import annotations

import math
from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FFProbeConfig(BaseModel):
    program: str = "ffprobe"
    # None means "wait for ffprobe as long as it takes"
    timeout_sec: Optional[float] = Field(default=None, gt=0)


class HistoryConfig(BaseModel):
    limit: int = Field(10, ge=1, description="How many recent files to remember")


class BitrateConfig(BaseModel):
    bucket_width: float = Field(1.0, gt=0, description="Histogram bucket width in seconds")
    stream_index: int = Field(0, ge=0)

    @field_validator("bucket_width")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("bucket_width must be finite")
        return v


class Settings(BaseSettings):
    # -------- Logging --------
    # used by get_logger() when the host has not configured logging itself
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()

    # Explicit ffprobe path; skips program discovery when set
    ffprobe_bin: Optional[Path] = Field(default=None, alias="FFPROBE_BIN")

    # -------- Sub-configs --------
    ffprobe: FFProbeConfig = FFProbeConfig()
    history: HistoryConfig = HistoryConfig()
    bitrate: BitrateConfig = BitrateConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Global settings accessor (cached). Use this everywhere you need config:
        from bitgraph.common.settings import get_settings
        cfg = get_settings()
    """
    return Settings()  # pydantic_settings will read from .env automatically
