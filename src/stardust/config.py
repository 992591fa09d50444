# src/stardust/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Legacy unprefixed names (SECRET_PASSWORD, ALLOWED_ORIGIN)
  are accepted as fallbacks for the prefixed ones.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "STARDUST"


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


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _split_list(raw: str | None, default: List[str]) -> List[str]:
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Access control ----
    secret_password: Optional[str]
    allowed_origins: List[str]
    default_origin: Optional[str]

    # ---- HTTP server ----
    host: str
    port: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "stardust") or "stardust"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/stardust"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        secret_password = _first_env(_k("SECRET_PASSWORD"), "SECRET_PASSWORD", default=None)
        allowed_origins = _split_list(_first_env(_k("ALLOWED_ORIGINS"), "ALLOWED_ORIGIN"), [])
        default_origin = (_env(_k("DEFAULT_ORIGIN"), "") or "").strip() or None

        host = _env(_k("HOST"), "127.0.0.1")
        port = _env_int(_k("PORT"), 8000)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            secret_password=secret_password,
            allowed_origins=allowed_origins,
            default_origin=default_origin,
            host=host,
            port=port,
        )

    def with_overrides(self, **changes: object) -> "Settings":
        """Copy with CLI overrides applied (None values are ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read once on first use (loads .env if present)."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
