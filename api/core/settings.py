"""
Environment-driven configuration.

Every knob is read through a small helper so defaults live in one place.
`load_settings()` is called once at startup; nothing else reads os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq's sslmode query parameter.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = _env_str("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


@dataclass(frozen=True)
class Settings:
    database_url: str
    database_pool_max_size: int
    database_acquire_timeout_s: float
    database_command_timeout_s: float
    storage_engine: str
    storage_endpoint: str
    storage_bucket: str
    storage_region: str
    storage_access_token: str | None
    storage_timeout_s: float
    healthz_timeout_s: float
    log_level: str
    host: str
    port: int


def load_settings() -> Settings:
    return Settings(
        database_url=database_url(),
        database_pool_max_size=_env_int("DATABASE_POOL_MAX_SIZE", 3),
        database_acquire_timeout_s=_env_float("DATABASE_ACQUIRE_TIMEOUT_S", 1.0),
        database_command_timeout_s=_env_float("DATABASE_COMMAND_TIMEOUT_S", 30.0),
        storage_engine=_env_str("CJW_STORAGE_ENGINE"),
        storage_endpoint=_env_str("CJW_STORAGE_ENDPOINT"),
        storage_bucket=_env_str("CJW_STORAGE_BUCKET"),
        storage_region=_env_str("CJW_STORAGE_REGION", "us-east-1"),
        storage_access_token=_env_str("CJW_STORAGE_ACCESS_TOKEN") or None,
        storage_timeout_s=_env_float("STORAGE_TIMEOUT_S", 30.0),
        healthz_timeout_s=_env_float("HEALTHZ_TIMEOUT_S", 2.0),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 8080),
    )
