"""Numeric tuning knobs read from the environment."""

from __future__ import annotations

import os

from .errors import ConfigurationError


def env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to ``default``."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}", source=name) from exc
    if value < 1:
        raise ConfigurationError(f"{name} must be positive, got {value}", source=name)
    return value
