"""Settings loaded from environment variables (+ optional .env).

Every variable carries the ``ORGANIZER_`` prefix, e.g. ``ORGANIZER_DATABASE_URL``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "ORGANIZER"
TRUTHY = {"1", "true", "yes", "on"}


def _read(name: str) -> Optional[str]:
    """Stripped ``ORGANIZER_<name>``; unset and blank both read as None."""
    raw = os.environ.get(f"{ENV_PREFIX}_{name}", "").strip()
    return raw or None


def _read_int(name: str, default: int) -> int:
    raw = _read(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _normalize_prefix(raw: str) -> str:
    prefix = raw.rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


@dataclass(frozen=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path
    log_to_file: bool

    # ---- HTTP ----
    host: str
    port: int
    api_prefix: str
    cors_origins: List[str]

    # ---- Database ----
    database_url: str
    sql_echo: bool

    # ---- Queries ----
    upcoming_days: int


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    load_dotenv(override=False)

    log_to_file = _read("LOG_TO_FILE")
    sql_echo = _read("SQL_ECHO")
    log_dir = _read("LOG_DIR")
    origins = _read("CORS_ORIGINS")

    return Settings(
        app_name=_read("APP_NAME") or "My Organizer API",
        log_level=(_read("LOG_LEVEL") or "INFO").upper(),
        log_dir=Path(log_dir).expanduser() if log_dir else Path(".local/organizer"),
        log_to_file=True if log_to_file is None else log_to_file.lower() in TRUTHY,
        host=_read("HOST") or "127.0.0.1",
        port=_read_int("PORT", 8000),
        api_prefix=_normalize_prefix(_read("API_PREFIX") or "/v1"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else ["*"],
        database_url=_read("DATABASE_URL") or "sqlite+aiosqlite:///./organizer.db",
        sql_echo=sql_echo is not None and sql_echo.lower() in TRUTHY,
        upcoming_days=max(0, _read_int("UPCOMING_DAYS", 7)),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
