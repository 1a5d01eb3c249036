"""Settings loaded from environment variables (+ optional .env).

Nothing here requires secrets at import time; the Gemini key is only checked
when the oracle is actually called.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKNEST"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v.strip()
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


@dataclass(frozen=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    cors_origins: list[str]

    # ---- Storage ----
    database_url: str

    # ---- Auth ----
    jwt_secret: str
    jwt_ttl_seconds: int

    # ---- Oracle (Gemini) ----
    gemini_api_key: Optional[str]
    gemini_model: str
    gemini_base_url: str
    oracle_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_first_env(_k("APP_NAME"), default="tasknest") or "tasknest",
            log_level=_first_env(_k("LOG_LEVEL"), default="INFO") or "INFO",
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
            database_url=_first_env(_k("DATABASE_URL"), "DATABASE_URL", default="") or "",
            jwt_secret=_first_env(_k("JWT_SECRET"), "JWT_SECRET", default="dev-secret") or "dev-secret",
            jwt_ttl_seconds=_env_int(_k("JWT_TTL_SECONDS"), 7 * 24 * 3600),
            gemini_api_key=_first_env(_k("GEMINI_API_KEY"), "GEMINI_API_KEY", default=None),
            gemini_model=_first_env(_k("GEMINI_MODEL"), default="gemini-1.5-flash") or "gemini-1.5-flash",
            gemini_base_url=_first_env(
                _k("GEMINI_BASE_URL"),
                default="https://generativelanguage.googleapis.com/v1beta",
            ) or "https://generativelanguage.googleapis.com/v1beta",
            oracle_timeout_seconds=_env_float(_k("ORACLE_TIMEOUT_SECONDS"), 30.0),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
