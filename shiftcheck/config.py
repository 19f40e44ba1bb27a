"""Runtime settings read from the environment."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # Weekly-hours check stays off unless explicitly enabled.
    enable_weekly_hours_check: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    seed_data: bool = False


def load_settings() -> Settings:
    return Settings(
        enable_weekly_hours_check=_env_flag("SHIFTCHECK_ENABLE_WEEKLY_HOURS_CHECK", "false"),
        log_level=os.getenv("SHIFTCHECK_LOG_LEVEL", "INFO").upper(),
        cors_origins=[
            origin.strip()
            for origin in os.getenv("SHIFTCHECK_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ],
        seed_data=_env_flag("SHIFTCHECK_SEED_DATA", "false"),
    )
