# src/veloce/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time: without an API key the app runs
  on the offline insight fallback.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "VELOCE"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- AI / Perplexity ----
    perplexity_api_key: str | None
    perplexity_base_url: str
    ai_model: str
    ai_connect_timeout: float
    ai_read_timeout: float
    ai_min_request_interval: float

    # Simulated "thinking" pause before offline insights are shown.
    fallback_delay: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "veloce").strip() or "veloce"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        perplexity_api_key = _first_env(
            _k("PERPLEXITY_API_KEY"), "PERPLEXITY_API_KEY", default=None
        )
        perplexity_base_url = _env(_k("PERPLEXITY_BASE_URL"), "https://api.perplexity.ai")
        ai_model = _env(_k("AI_MODEL"), "sonar").strip() or "sonar"

        connect_timeout = _env_float(_k("AI_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("AI_READ_TIMEOUT_SECONDS"), 30.0)
        min_interval = _env_float(_k("AI_MIN_REQUEST_INTERVAL_SECONDS"), 0.5)
        fallback_delay = _env_float(_k("FALLBACK_DELAY_SECONDS"), 0.5)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/veloce"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            perplexity_api_key=perplexity_api_key,
            perplexity_base_url=perplexity_base_url,
            ai_model=ai_model,
            ai_connect_timeout=max(0.1, connect_timeout),
            ai_read_timeout=max(connect_timeout, read_timeout),
            ai_min_request_interval=max(0.0, min_interval),
            fallback_delay=max(0.0, fallback_delay),
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
