"""Application configuration helpers."""

from __future__ import annotations

from .analysis import AnalysisConfig, get_analysis_config
from .env import env_int, env_str
from .errors import ConfigurationError
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AnalysisConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "StorageConfig",
    "env_int",
    "env_str",
    "get_analysis_config",
    "get_database_config",
    "get_storage_config",
]
