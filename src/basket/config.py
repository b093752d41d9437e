"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    database_path: Path = Field(
        default=Path("./data/basket.db"),
        description="SQLite database location.",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Shared token required on every API request when set.",
    )
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    log_requests: bool = Field(
        default=True,
        description="Emit request access logs when true.",
    )
    sqlite_busy_timeout: float = Field(
        default=30.0,
        description="Seconds a writer waits for the SQLite write lock before failing.",
    )
    search_default_limit: int = Field(
        default=20,
        description="Number of catalog matches returned when the caller does not pass a limit.",
    )
    search_max_limit: int = Field(
        default=100,
        description="Largest catalog search limit a caller may request.",
    )
    registration_invitation_code: Optional[str] = Field(
        default=None,
        description="Fallback registration code when the app_settings table has none.",
    )
    server_host: str = Field(default="127.0.0.1", description="Address uvicorn binds to.")
    server_port: int = Field(default=8000, description="Port uvicorn listens on.")
    server_reload: bool = Field(default=False, description="Restart the server when source files change.")
    server_shutdown_after: Optional[float] = Field(
        default=None,
        description="Stop serving after this many seconds (smoke runs).",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (db_path := _env("BASKET_DATABASE_PATH")):
        payload["database_path"] = Path(db_path)
    if (api_token := _env("BASKET_API_TOKEN")):
        payload["api_token"] = api_token
    if (log_level := _env("BASKET_LOG_LEVEL")):
        payload["log_level"] = log_level
    if (log_format := _env("BASKET_LOG_FORMAT")):
        payload["log_format"] = log_format
    if (log_requests := _env("BASKET_LOG_REQUESTS")):
        payload["log_requests"] = _coerce_bool(log_requests)
    if (busy_timeout := _env("BASKET_SQLITE_BUSY_TIMEOUT")):
        try:
            payload["sqlite_busy_timeout"] = float(busy_timeout)
        except ValueError:
            pass
    if (search_limit := _env("BASKET_SEARCH_LIMIT")):
        try:
            payload["search_default_limit"] = int(search_limit)
        except ValueError:
            pass
    if (search_max := _env("BASKET_SEARCH_MAX_LIMIT")):
        try:
            payload["search_max_limit"] = int(search_max)
        except ValueError:
            pass
    registration_code = _env("BASKET_REGISTRATION_INVITATION_CODE") or _env(
        "REGISTRATION_INVITATION_CODE"
    )
    if registration_code:
        payload["registration_invitation_code"] = registration_code
    if (server_host := _env("BASKET_SERVER_HOST")):
        payload["server_host"] = server_host
    if (server_port := _env("BASKET_SERVER_PORT")):
        try:
            payload["server_port"] = int(server_port)
        except ValueError:
            pass
    if (server_reload := _env("BASKET_SERVER_RELOAD")):
        payload["server_reload"] = _coerce_bool(server_reload)
    if (shutdown_after := _env("BASKET_SERVER_SHUTDOWN_AFTER")):
        try:
            payload["server_shutdown_after"] = float(shutdown_after)
        except ValueError:
            pass
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
