"""Centralized application configuration with schema validation.

This module is intentionally compatibility-first:
- Supports flat environment names (for example ``CORTEX_URL``).
- Supports nested names (for example ``CORTEX__URL``) for consistency.
- Optionally reads a local ``.env`` file before process env values.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def _parse_flag(value: object, default: bool) -> bool:
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


class CortexConfig(BaseModel):
    """Connection settings for the Synapse Cortex HTTP API."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(default="", description="Cortex base URL, e.g. https://cortex:4443")
    api_key: str = Field(default="", description="Sent as X-API-KEY when non-empty")
    timeout: float = Field(default=30.0, gt=0.0, le=600.0)
    tls_skip_verify: bool = Field(default=False)

    @field_validator("url", mode="before")
    @classmethod
    def _normalize_url(cls, value: object) -> str:
        return str(value or "").strip().rstrip("/")

    @field_validator("tls_skip_verify", mode="before")
    @classmethod
    def _normalize_tls_skip_verify(cls, value: object) -> bool:
        return _parse_flag(value, False)


class APIConfig(BaseModel):
    """Flask API runtime configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    version: str = Field(default="v1")
    debug_errors: bool = Field(default=False)

    @field_validator("version")
    @classmethod
    def _normalize_version(cls, value: str) -> str:
        text = str(value or "").strip().lower()
        if re.match(r"^v\d+$", text):
            return text
        return "v1"


class LoggingSettings(BaseModel):
    """Repository-wide logging settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    override_root_handlers: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        text = str(value or "").strip().upper()
        if text in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return text
        return "INFO"


class DecodeConfig(BaseModel):
    """Result decoding settings."""

    model_config = ConfigDict(frozen=True)

    max_warning_samples: int = Field(default=50, ge=0, le=10_000)


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    cortex: CortexConfig = Field(default_factory=CortexConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    decode: DecodeConfig = Field(default_factory=DecodeConfig)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables."""
        runtime_env = os.environ if env is None else env
        merged_env = _merge_env(_load_dotenv(Path(env_file)), runtime_env)
        payload = _build_payload(merged_env)
        return cls.model_validate(payload)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Parse a minimal `.env` file format."""
    if not path.exists() or not path.is_file():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        key_clean = key.strip()
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key_clean:
            values[key_clean] = value
    return values


def _merge_env(dotenv_values: Mapping[str, str], runtime_env: Mapping[str, str]) -> dict[str, str]:
    """Return env map where process env overrides `.env` values."""
    merged = {str(k): str(v) for k, v in dotenv_values.items()}
    for key, value in runtime_env.items():
        merged[str(key)] = str(value)
    return merged


def _first_non_empty(env: Mapping[str, str], *keys: str) -> str | None:
    """Return the first non-empty value for the provided keys."""
    for key in keys:
        value = str(env.get(key, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, object]:
    """Build nested settings payload from env values."""
    cortex = {
        "url": _first_non_empty(env, "CORTEX__URL", "CORTEX_URL"),
        "api_key": _first_non_empty(env, "CORTEX__API_KEY", "CORTEX_API_KEY"),
        "timeout": _first_non_empty(env, "CORTEX__TIMEOUT", "CORTEX_TIMEOUT"),
        "tls_skip_verify": _first_non_empty(env, "CORTEX__TLS_SKIP_VERIFY", "CORTEX_TLS_SKIP_VERIFY"),
    }
    api = {
        "host": _first_non_empty(env, "API__HOST", "API_HOST", "HOST"),
        "port": _first_non_empty(env, "API__PORT", "API_PORT", "PORT"),
        "version": _first_non_empty(env, "API__VERSION", "API_VERSION"),
        "debug_errors": _first_non_empty(env, "API__DEBUG_ERRORS", "API_DEBUG_ERRORS"),
    }
    logging_settings = {
        "level": _first_non_empty(env, "LOGGING__LEVEL", "STORMGRID_LOG_LEVEL"),
        "json_logs": _first_non_empty(env, "LOGGING__JSON_LOGS", "STORMGRID_LOG_JSON"),
        "override_root_handlers": _first_non_empty(
            env, "LOGGING__OVERRIDE_ROOT_HANDLERS", "STORMGRID_LOG_OVERRIDE"
        ),
    }
    decode = {
        "max_warning_samples": _first_non_empty(
            env, "DECODE__MAX_WARNING_SAMPLES", "DECODE_MAX_WARNING_SAMPLES"
        ),
    }
    return {
        "cortex": {k: v for k, v in cortex.items() if v is not None},
        "api": {k: v for k, v in api.items() if v is not None},
        "logging": {k: v for k, v in logging_settings.items() if v is not None},
        "decode": {k: v for k, v in decode.items() if v is not None},
    }


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Return cached settings, optionally forcing reload from env."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear in-process settings cache."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "APIConfig",
    "CortexConfig",
    "DecodeConfig",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ValidationError",
]
