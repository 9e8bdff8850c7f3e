"""Typed readers for environment variables."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def env_str(name: str, default: str) -> str:
    """Stripped value of ``name``; blank or unset falls back to ``default``."""

    return (os.getenv(name) or "").strip() or default


def env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = env_str(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value
