"""
Forwarder settings and configuration management.

Supports loading from:
1. A YAML config file, optionally SOPS-encrypted (config.enc.yaml)
2. Environment variables (fallback)

Settings are validated once at startup; an invalid configuration raises
ConfigurationError listing every problem found.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from .constants import (
    DEFAULT_BACKEND_MAX_RETRIES,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MESSAGE_FORMAT,
    DEFAULT_PARSE_ERROR_POLICY,
    DEFAULT_STREAM_NAME_SOURCE,
    LOG_EVENT_OVERHEAD,
    MAX_BATCH_COUNT,
    MAX_BATCH_SIZE,
    MESSAGE_FORMATS,
    PARSE_ERROR_POLICIES,
    STREAM_NAME_SOURCES,
)

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Top-level keys accepted in a YAML config file
RECOGNIZED_CONFIG_KEYS = frozenset(
    [
        "log_group",
        "message_format",
        "log_stream",
        "parse_error_policy",
        "batch",
        "backend",
        "logging",
    ]
)


class ConfigurationError(Exception):
    """
    Raised when forwarder settings are missing or invalid.

    Attributes:
        errors: Individual validation problems
    """

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))


def _env_int(key: str, default: int) -> int:
    """Parse an int from an env var, raising ConfigurationError on junk."""
    raw = os.environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError([f"{key} must be an integer, got {raw!r}"])


def _config_int(
    config: dict[str, Any], key: str, default: int, section: str, errors: list[str]
) -> int:
    """Read an int option from a config section, recording junk in errors."""
    value = config.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        errors.append(f"{section}.{key} must be an integer, got {value!r}")
        return default


def _config_section(config: dict[str, Any], name: str, errors: list[str]) -> dict:
    """Return a nested config section; a missing or empty one is {}."""
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        errors.append(
            f"{name} must be a mapping, got {type(section).__name__} {section!r}"
        )
        return {}
    return section


# =============================================================================
# Batch Limits
# =============================================================================


@dataclass(frozen=True)
class BatchLimits:
    """
    Hard limits of a single backend append call.

    Defaults are the CloudWatch Logs PutLogEvents limits.
    """

    max_batch_bytes: int = MAX_BATCH_SIZE
    max_batch_count: int = MAX_BATCH_COUNT
    event_overhead: int = LOG_EVENT_OVERHEAD

    def validate(self) -> list[str]:
        """Validate limit values. Returns list of errors."""
        errors = []

        if self.max_batch_count < 1:
            errors.append(f"max_batch_count must be >= 1, got {self.max_batch_count}")
        if self.event_overhead < 0:
            errors.append(f"event_overhead must be >= 0, got {self.event_overhead}")
        if self.max_batch_bytes <= self.event_overhead:
            errors.append(
                f"max_batch_bytes must exceed event_overhead "
                f"({self.event_overhead}), got {self.max_batch_bytes}"
            )

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "max_bytes": self.max_batch_bytes,
            "max_count": self.max_batch_count,
            "event_overhead": self.event_overhead,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "BatchLimits":
        """
        Create from configuration dictionary.

        Raises:
            ConfigurationError: If a value is not an integer
        """
        errors: list[str] = []
        limits = cls(
            max_batch_bytes=_config_int(
                config, "max_bytes", MAX_BATCH_SIZE, "batch", errors
            ),
            max_batch_count=_config_int(
                config, "max_count", MAX_BATCH_COUNT, "batch", errors
            ),
            event_overhead=_config_int(
                config, "event_overhead", LOG_EVENT_OVERHEAD, "batch", errors
            ),
        )
        if errors:
            raise ConfigurationError(errors)
        return limits

    @classmethod
    def from_env(cls) -> "BatchLimits":
        """Create from environment variables."""
        return cls(
            max_batch_bytes=_env_int("MAX_BATCH_BYTES", MAX_BATCH_SIZE),
            max_batch_count=_env_int("MAX_BATCH_COUNT", MAX_BATCH_COUNT),
            event_overhead=_env_int("LOG_EVENT_OVERHEAD", LOG_EVENT_OVERHEAD),
        )


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """
    Settings for one forwarder deployment.

    Attributes:
        log_group: CloudWatch log group receiving all streams
        message_format: "plain" forwards the raw line, "json" the field mapping
        stream_name_source: How stream names derive from the object key
            ("elb-name" or "elb-fullname"); ignored when stream_name is set
        stream_name: Fixed stream name for every object (optional)
        parse_error_policy: "abort" fails the object on the first bad line,
            "skip" logs and drops the line
        batch_limits: Backend batch limits
        backend_max_retries: Retries for throttled/unavailable backend calls
        log_level: Root logging level
    """

    log_group: str = ""
    message_format: str = DEFAULT_MESSAGE_FORMAT
    stream_name_source: str = DEFAULT_STREAM_NAME_SOURCE
    stream_name: Optional[str] = None
    parse_error_policy: str = DEFAULT_PARSE_ERROR_POLICY
    batch_limits: BatchLimits = field(default_factory=BatchLimits)
    backend_max_retries: int = DEFAULT_BACKEND_MAX_RETRIES
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def uses_fixed_stream_name(self) -> bool:
        """True if every object goes to one configured stream."""
        return bool(self.stream_name)

    def validate(self) -> list[str]:
        """Validate required settings are present. Returns list of errors."""
        errors = []

        if not self.log_group:
            errors.append("log_group is required")

        if self.message_format not in MESSAGE_FORMATS:
            errors.append(
                f"message_format must be one of {', '.join(MESSAGE_FORMATS)}, "
                f"got {self.message_format!r}"
            )

        if not self.uses_fixed_stream_name and (
            self.stream_name_source not in STREAM_NAME_SOURCES
        ):
            errors.append(
                f"stream_name_source must be one of {', '.join(STREAM_NAME_SOURCES)}, "
                f"got {self.stream_name_source!r}"
            )

        if self.parse_error_policy not in PARSE_ERROR_POLICIES:
            errors.append(
                f"parse_error_policy must be one of {', '.join(PARSE_ERROR_POLICIES)}, "
                f"got {self.parse_error_policy!r}"
            )

        if self.backend_max_retries < 0:
            errors.append(
                f"backend_max_retries must be >= 0, got {self.backend_max_retries}"
            )

        if str(self.log_level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be a logging level, got {self.log_level!r}")

        # Validate nested settings
        errors.extend(self.batch_limits.validate())

        return errors

    def to_dict(self) -> dict:
        """Convert to the same nested layout from_dict reads."""
        log_stream: dict[str, Any] = {"name_source": self.stream_name_source}
        if self.stream_name:
            log_stream["name"] = self.stream_name
        return {
            "log_group": self.log_group,
            "message_format": self.message_format,
            "log_stream": log_stream,
            "parse_error_policy": self.parse_error_policy,
            "batch": self.batch_limits.to_dict(),
            "backend": {"max_retries": self.backend_max_retries},
            "logging": {"level": self.log_level},
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Settings":
        """
        Create Settings from a configuration dictionary (e.g., from YAML).

        Raises:
            ConfigurationError: If the dictionary carries unrecognized keys,
                nested sections that are not mappings, or non-integer limits
        """
        unknown = sorted(set(config) - RECOGNIZED_CONFIG_KEYS)
        if unknown:
            raise ConfigurationError(
                [f"Unrecognized config option: {key}" for key in unknown]
            )

        errors: list[str] = []
        log_stream = _config_section(config, "log_stream", errors)
        batch = _config_section(config, "batch", errors)
        backend = _config_section(config, "backend", errors)
        logging_config = _config_section(config, "logging", errors)

        try:
            batch_limits = BatchLimits.from_dict(batch)
        except ConfigurationError as e:
            errors.extend(e.errors)
            batch_limits = BatchLimits()

        backend_max_retries = _config_int(
            backend, "max_retries", DEFAULT_BACKEND_MAX_RETRIES, "backend", errors
        )

        if errors:
            raise ConfigurationError(errors)

        return cls(
            log_group=config.get("log_group", ""),
            message_format=config.get("message_format", DEFAULT_MESSAGE_FORMAT),
            stream_name_source=log_stream.get(
                "name_source", DEFAULT_STREAM_NAME_SOURCE
            ),
            stream_name=log_stream.get("name") or None,
            parse_error_policy=config.get(
                "parse_error_policy", DEFAULT_PARSE_ERROR_POLICY
            ),
            batch_limits=batch_limits,
            backend_max_retries=backend_max_retries,
            log_level=logging_config.get("level", DEFAULT_LOG_LEVEL),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        return cls(
            log_group=os.environ.get("LOG_GROUP", ""),
            message_format=os.environ.get("MESSAGE_FORMAT", DEFAULT_MESSAGE_FORMAT),
            stream_name_source=os.environ.get(
                "LOG_STREAM_NAME_SOURCE", DEFAULT_STREAM_NAME_SOURCE
            ),
            stream_name=os.environ.get("LOG_STREAM_NAME") or None,
            parse_error_policy=os.environ.get(
                "PARSE_ERROR_POLICY", DEFAULT_PARSE_ERROR_POLICY
            ),
            batch_limits=BatchLimits.from_env(),
            backend_max_retries=_env_int(
                "BACKEND_MAX_RETRIES", DEFAULT_BACKEND_MAX_RETRIES
            ),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )


# Env var naming an optional config file
CONFIG_PATH_ENV = "FORWARDER_CONFIG"


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load and validate settings.

    Reads the config file given (or named by FORWARDER_CONFIG) when present,
    otherwise environment variables.

    Args:
        config_path: Optional path to a YAML or SOPS-encrypted YAML config file

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    path_str = config_path or os.environ.get(CONFIG_PATH_ENV)

    if path_str:
        from .loader import load_config_file

        path = Path(path_str)
        try:
            settings = Settings.from_dict(load_config_file(path))
        except (FileNotFoundError, RuntimeError, ValueError) as e:
            raise ConfigurationError([f"Cannot load config file {path}: {e}"]) from e
        logger.debug(f"Loaded settings from {path}")
    else:
        settings = Settings.from_env()

    errors = settings.validate()
    if errors:
        raise ConfigurationError(errors)

    return settings


@lru_cache
def get_settings(config_path: Optional[str] = None) -> Settings:
    """
    Get cached, validated settings instance.

    Args:
        config_path: Optional path to a config file

    Returns:
        Settings instance
    """
    return load_settings(config_path)


def clear_settings_cache() -> None:
    """Clear the cached settings (useful for testing)."""
    get_settings.cache_clear()
