"""Application configuration helpers."""

from __future__ import annotations

from .env import env_int
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging, quiet_library_loggers
from .marking import MarkPrefixSettingsDocument, load_mark_settings, save_mark_settings
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)
from .transfer import (
    TransferConfigurationDocument,
    load_transfer_configuration,
    save_transfer_configuration,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "MarkPrefixSettingsDocument",
    "MissingConfigurationError",
    "StorageConfig",
    "TransferConfigurationDocument",
    "configure_logging",
    "env_int",
    "get_database_config",
    "get_database_uri",
    "get_storage_config",
    "load_mark_settings",
    "load_transfer_configuration",
    "quiet_library_loggers",
    "save_mark_settings",
    "save_transfer_configuration",
]
