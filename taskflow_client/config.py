"""
Configuration classes for the taskflow client.

The client is a thin, stateless-by-default consumer of the remote task API.
Every setting is read from environment variables with sensible defaults so
the same code runs unchanged in development, CI and production shells.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _float_env(name: str, default: str) -> float:
    """Read a float setting, failing loudly on malformed values."""
    raw_value = os.environ.get(name, default).strip()
    try:
        return float(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid numeric value for {name}: '{raw_value}'.") from exc


class Config:
    """Base configuration for all client environments."""

    REMOTE_API_URL: str = os.environ.get("REMOTE_API_URL", "http://localhost:8888")
    # Seconds; 0 disables the per-request timeout.
    REMOTE_API_TIMEOUT: float = _float_env("REMOTE_API_TIMEOUT", "10")

    # Empty SESSION_FILE keeps the session in memory only.
    SESSION_FILE: str = os.environ.get("SESSION_FILE", "")
    SESSION_TOKEN_KEY: str = os.environ.get("SESSION_TOKEN_KEY", "token")
    SESSION_USER_KEY: str = os.environ.get("SESSION_USER_KEY", "user")

    SUCCESS_DISPLAY_SECONDS: float = _float_env("SUCCESS_DISPLAY_SECONDS", "2.0")
    CLOSE_RESET_SECONDS: float = _float_env("CLOSE_RESET_SECONDS", "0.3")

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    """Configuration for local development."""

    DEBUG: bool = True
    TESTING: bool = False
    SESSION_FILE: str = os.environ.get(
        "SESSION_FILE", str(Path.home() / ".taskflow" / "session.json")
    )


class TestingConfig(Config):
    """Configuration for automated tests."""

    DEBUG: bool = True
    TESTING: bool = True

    REMOTE_API_URL: str = os.environ.get("TEST_REMOTE_API_URL", "http://remote-api.test")
    REMOTE_API_TIMEOUT: float = _float_env("TEST_REMOTE_API_TIMEOUT", "1")
    SESSION_FILE: str = ""
    SUCCESS_DISPLAY_SECONDS: float = 0.0
    CLOSE_RESET_SECONDS: float = 0.0


class ProductionConfig(Config):
    """Configuration for production use."""

    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "WARNING")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Look up and return the configuration class for the given environment.

    Args:
        env: Environment name. When None, falls back to TASKFLOW_ENV.

    Returns:
        The selected configuration class.
    """
    if env is None:
        env = os.environ.get("TASKFLOW_ENV", "development")
    return config.get(env, config["default"])
