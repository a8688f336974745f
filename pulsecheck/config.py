from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Storage
    database_path: str = "data/pulsecheck.db"

    # Scheduler polling granularity; keep well below the smallest check interval
    tick_seconds: float = Field(
        default=40.0,
        gt=0,
        validation_alias=AliasChoices("tick_seconds", "cron_every_seconds"),
    )
    max_concurrency: int = Field(default=0, ge=0)  # 0 = one task per due check
    shutdown_grace_seconds: float = 10.0

    # Optional YAML file of checks to seed on startup
    checks_file: str = ""

    # Results / summary API
    results_default_limit: int = 200
    results_max_limit: int = 500
    summary_window: str = "24h"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 4001

    # Logging
    log_level: str = "INFO"


settings = Settings()
