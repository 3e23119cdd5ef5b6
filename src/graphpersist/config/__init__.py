"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .persist import PersistConfig, get_persist_config
from .storage import DatabaseConfig, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "PersistConfig",
    "configure_logging",
    "env_flag",
    "get_database_config",
    "get_persist_config",
    "require_env_vars",
]
