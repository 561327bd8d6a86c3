"""Server settings, read from ``AP_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_TOKEN = "changeme"


class Settings(BaseSettings):
    token: str = PLACEHOLDER_TOKEN
    host: str = "127.0.0.1"
    port: int = 8787
    log_level: str = "WARNING"

    engine_bin: str = "moji"
    engine_timeout: float = Field(default=5.0, gt=0)

    max_input_chars: int = Field(default=200_000, ge=1)
    render_rate_per_sec: int = Field(default=5, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="AP_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
