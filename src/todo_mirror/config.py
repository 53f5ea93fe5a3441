# src/todo_mirror/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a usable default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .tasks.reorder import ReorderPolicy

ENV_PREFIX = "TODO_MIRROR"

REORDER_POLICIES = tuple(p.value for p in ReorderPolicy)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower().replace("-", "_")
    return value if value in choices else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Remote store ----
    api_base_url: str
    request_timeout_seconds: float

    # ---- Cache behaviour ----
    reorder_policy: str

    # ---- Connectors ----
    console_enabled: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-mirror").strip() or "todo-mirror"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo-mirror"))

        api_base_url = _env(_k("API_BASE_URL"), "http://127.0.0.1:3000").strip().rstrip("/")
        # A zero or negative timeout would make httpx fail every request.
        request_timeout_seconds = max(0.5, _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 10.0))

        reorder_policy = _env_choice(_k("REORDER_POLICY"), REORDER_POLICIES, ReorderPolicy.FULL_REINDEX.value)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_base_url=api_base_url,
            request_timeout_seconds=request_timeout_seconds,
            reorder_policy=reorder_policy,
            console_enabled=console_enabled,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
