"""Core utility modules for prox."""

# Configuration utilities
from .config import (
    CONFIG_DIR,
    CONFIG_FILE_YAML,
    DEFAULT_CONFIG,
    DEFAULT_PROFILE,
    Config,
    ConfigurationError,
    ProfileNotFoundError,
    ProfileStore,
)
from .enrichment import AddressEnricher
from .logging_config import LoggingConfig, LogLevel, SensitiveDataFilter, setup_logging
from .task_monitor import BackoffPolicy, TaskMonitor

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE_YAML",
    "DEFAULT_CONFIG",
    "DEFAULT_PROFILE",
    "AddressEnricher",
    "BackoffPolicy",
    "Config",
    "ConfigurationError",
    "LogLevel",
    "LoggingConfig",
    "ProfileNotFoundError",
    "ProfileStore",
    "SensitiveDataFilter",
    "TaskMonitor",
    "setup_logging",
]
