"""Configuration module."""

from .constants import LOG_EVENT_OVERHEAD, MAX_BATCH_COUNT, MAX_BATCH_SIZE
from .loader import decrypt_sops_file, load_config_file
from .log_setup import setup_logging
from .settings import (
    BatchLimits,
    ConfigurationError,
    Settings,
    clear_settings_cache,
    get_settings,
    load_settings,
)

__all__ = [
    # Backend limits
    "MAX_BATCH_SIZE",
    "MAX_BATCH_COUNT",
    "LOG_EVENT_OVERHEAD",
    # Settings
    "BatchLimits",
    "ConfigurationError",
    "Settings",
    "get_settings",
    "load_settings",
    "clear_settings_cache",
    # Config loading
    "load_config_file",
    "decrypt_sops_file",
    # Logging
    "setup_logging",
]
