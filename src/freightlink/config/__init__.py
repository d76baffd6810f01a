"""Application configuration helpers."""

from __future__ import annotations

from .env import bool_from_env, float_from_env, int_from_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .postgrest import PostgrestConfig, get_postgrest_config
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "PostgrestConfig",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "bool_from_env",
    "configure_logging",
    "float_from_env",
    "get_database_config",
    "get_postgrest_config",
    "get_reconcile_config",
    "get_storage_config",
    "int_from_env",
    "require_env_vars",
]
