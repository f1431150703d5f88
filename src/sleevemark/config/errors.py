"""Errors raised while reading settings files and environment overrides."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class ConfigurationError(RuntimeError):
    """A settings file or environment variable holds a value sleevemark cannot use.

    ``source`` names where the value came from, a file path or a variable name, so
    the CLI can tell the user what to fix.
    """

    def __init__(self, message: str, *, source: str | Path | None = None) -> None:
        super().__init__(message)
        self.source = None if source is None else str(source)


class MissingConfigurationError(ConfigurationError):
    """A settings file that has no usable default is absent."""
