"""Unit tests for centralized configuration parsing and validation."""

from __future__ import annotations

from typing import Any

import pytest

from infra.config import Settings, ValidationError, clear_settings_cache, get_settings


def test_settings_reads_flat_env_keys() -> None:
    """Flat env keys should map to nested settings models."""
    env = {
        "CORTEX_URL": "https://cortex:4443/",
        "CORTEX_API_KEY": "secret",
        "CORTEX_TIMEOUT": "12.5",
        "CORTEX_TLS_SKIP_VERIFY": "yes",
        "API_VERSION": "v2",
        "API_DEBUG_ERRORS": "1",
        "PORT": "7001",
        "STORMGRID_LOG_LEVEL": "debug",
        "STORMGRID_LOG_JSON": "1",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.cortex.url == "https://cortex:4443"
    assert settings.cortex.api_key == "secret"
    assert settings.cortex.timeout == 12.5
    assert settings.cortex.tls_skip_verify is True
    assert settings.api.version == "v2"
    assert settings.api.debug_errors is True
    assert settings.api.port == 7001
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json_logs is True


def test_settings_reads_nested_env_keys() -> None:
    """Nested env keys should be supported with `__` delimiter."""
    env = {
        "CORTEX__URL": "https://nested",
        "API__HOST": "127.0.0.1",
        "API__PORT": "5050",
        "DECODE__MAX_WARNING_SAMPLES": "5",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.cortex.url == "https://nested"
    assert settings.api.host == "127.0.0.1"
    assert settings.api.port == 5050
    assert settings.decode.max_warning_samples == 5


def test_dotenv_values_are_overridden_by_process_env(tmp_path: Any) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text('CORTEX_URL="https://from-file"\nCORTEX_API_KEY=file-key\n# comment\n', encoding="utf-8")

    settings = Settings.from_env(env={"CORTEX_API_KEY": "env-key"}, env_file=str(dotenv))

    assert settings.cortex.url == "https://from-file"
    assert settings.cortex.api_key == "env-key"


def test_settings_invalid_timeout_raises_validation_error() -> None:
    """Invalid constrained values should fail schema validation."""
    with pytest.raises(ValidationError):
        Settings.from_env(env={"CORTEX_TIMEOUT": "0"}, env_file=".missing.env")


def test_settings_invalid_api_version_falls_back_to_v1() -> None:
    """Invalid API version values should normalize to v1 for compatibility."""
    settings = Settings.from_env(env={"API_VERSION": "latest"}, env_file=".missing.env")
    assert settings.api.version == "v1"


def test_log_level_comes_only_from_logging_section() -> None:
    """The logging section is the single source of the log level."""
    settings = Settings.from_env(
        env={"API_LOG_LEVEL": "debug", "CORTEX_VERSION": "2.1", "LOGGING__LEVEL": "warning"},
        env_file=".missing.env",
    )

    assert settings.logging.level == "WARNING"
    assert "log_level" not in settings.api.model_dump()
    assert "version" not in settings.cortex.model_dump()


def test_get_settings_reload_rebuilds_cache(monkeypatch: Any) -> None:
    """Reload should rebuild cached settings from current process env."""
    clear_settings_cache()
    monkeypatch.setenv("CORTEX_URL", "https://first")
    first = get_settings(reload=True)

    monkeypatch.setenv("CORTEX_URL", "https://second")
    second = get_settings(reload=True)

    assert first.cortex.url == "https://first"
    assert second.cortex.url == "https://second"
    clear_settings_cache()
