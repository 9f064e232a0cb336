"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
engine settings loaded from ``VET_CLINIC_*`` variables, logging configuration
utilities, and the feature flag management system.
"""

import json
import logging
import logging.config
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import ConfigurationException

ENV_PREFIX = "VET_CLINIC_"
TRUTHY_VALUES = ("true", "1", "yes", "on", "enabled")

NORMALIZED_PROTOCOL_MATCHING = "normalized_protocol_matching"


class ConfigError(ConfigurationException):
    """Exception raised for configuration-related errors."""

    pass


class LogLevel(Enum):
    """Enumeration for log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class FeatureFlag:
    """Represents a feature flag configuration."""

    name: str
    enabled: bool
    description: str = ""
    conditions: Dict[str, Any] = field(default_factory=dict)

    def is_enabled_for(self, attributes: Optional[Dict[str, Any]] = None) -> bool:
        """
        Check if the feature is enabled for a given evaluation context.

        Args:
            attributes: Context attributes matched against the flag conditions

        Returns:
            True if the feature is enabled
        """
        if not self.enabled:
            return False

        if self.conditions and attributes:
            for condition_key, condition_value in self.conditions.items():
                if condition_key in attributes:
                    if attributes[condition_key] != condition_value:
                        return False

        return True


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ConfigError(
                f"Required environment variable '{key}' is not set", config_key=key
            )

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set",
                    config_key=key,
                )
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}",
                config_key=key,
                config_value=value,
            )

    @staticmethod
    def get_bool(
        key: str, default: Optional[bool] = None, required: bool = False
    ) -> Optional[bool]:
        """
        Get a boolean environment variable.

        Accepts true/1/yes/on/enabled (case-insensitive) as truthy values;
        anything else is False.
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set",
                    config_key=key,
                )
            return default

        return value.strip().lower() in TRUTHY_VALUES

    @staticmethod
    def get_list(
        key: str,
        default: Optional[List[str]] = None,
        separator: str = ",",
        required: bool = False,
    ) -> Optional[List[str]]:
        """Get a list environment variable split on ``separator``."""
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set",
                    config_key=key,
                )
            return default

        return [item.strip() for item in value.split(separator) if item.strip()]

    @staticmethod
    def get_json(
        key: str, default: Optional[Any] = None, required: bool = False
    ) -> Optional[Any]:
        """Get a JSON environment variable."""
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set",
                    config_key=key,
                )
            return default

        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Environment variable '{key}' must be valid JSON: {e}",
                config_key=key,
            )


@dataclass
class EngineSettings:
    """Runtime settings for the clinic engine."""

    namespace_prefix: str = "vetpro"
    timezone: str = "UTC"
    upcoming_days: int = 30
    expiry_warning_days: int = 30
    database_url: Optional[str] = None
    log_level: LogLevel = LogLevel.INFO
    seed_protocols: bool = True

    def __post_init__(self) -> None:
        if not self.namespace_prefix:
            raise ConfigError(
                "Namespace prefix cannot be empty",
                config_key=f"{ENV_PREFIX}NAMESPACE_PREFIX",
            )
        if self.upcoming_days < 0:
            raise ConfigError(
                "Upcoming window must be non-negative",
                config_key=f"{ENV_PREFIX}UPCOMING_DAYS",
                config_value=str(self.upcoming_days),
            )
        if self.expiry_warning_days < 0:
            raise ConfigError(
                "Expiry warning window must be non-negative",
                config_key=f"{ENV_PREFIX}EXPIRY_WARNING_DAYS",
                config_value=str(self.expiry_warning_days),
            )
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(
                f"Unknown timezone: {self.timezone}",
                config_key=f"{ENV_PREFIX}TIMEZONE",
                config_value=self.timezone,
            )

    @classmethod
    def from_environment(cls) -> "EngineSettings":
        """
        Build settings from ``VET_CLINIC_*`` environment variables.

        Returns:
            EngineSettings populated from the environment, defaults elsewhere

        Raises:
            ConfigError: If a variable is present but invalid
        """
        level_name = (
            EnvironmentConfig.get_str(f"{ENV_PREFIX}LOG_LEVEL", "INFO") or "INFO"
        )
        try:
            log_level = LogLevel(level_name.upper())
        except ValueError:
            raise ConfigError(
                f"Invalid log level: {level_name}",
                config_key=f"{ENV_PREFIX}LOG_LEVEL",
                config_value=level_name,
            )

        return cls(
            namespace_prefix=EnvironmentConfig.get_str(
                f"{ENV_PREFIX}NAMESPACE_PREFIX", "vetpro"
            ),
            timezone=EnvironmentConfig.get_str(f"{ENV_PREFIX}TIMEZONE", "UTC"),
            upcoming_days=EnvironmentConfig.get_int(f"{ENV_PREFIX}UPCOMING_DAYS", 30),
            expiry_warning_days=EnvironmentConfig.get_int(
                f"{ENV_PREFIX}EXPIRY_WARNING_DAYS", 30
            ),
            database_url=EnvironmentConfig.get_str(f"{ENV_PREFIX}DATABASE_URL"),
            log_level=log_level,
            seed_protocols=EnvironmentConfig.get_bool(
                f"{ENV_PREFIX}SEED_PROTOCOLS", True
            ),
        )

    def namespace_key(self, namespace: str) -> str:
        """Return the full state store key for a namespace."""
        return f"{self.namespace_prefix}_{namespace}"


class LoggingConfigurator:
    """Utility class for configuring logging."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configure_basic_logging(
        level: Union[str, LogLevel] = LogLevel.INFO,
        format_string: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> None:
        """
        Configure basic logging for the application.

        Args:
            level: Logging level
            format_string: Custom format string
            log_file: Optional log file path
        """
        if isinstance(level, LogLevel):
            level = level.value

        basic_config_args: Dict[str, Any] = {
            "level": level,
            "format": format_string or LoggingConfigurator.DEFAULT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }

        if log_file:
            basic_config_args["filename"] = log_file
            basic_config_args["filemode"] = "a"

        logging.basicConfig(**basic_config_args)

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None,
        config_file: Optional[str] = None,
        level: Union[str, LogLevel] = LogLevel.INFO,
    ) -> None:
        """
        Configure structured logging using a dictionary or file.

        Args:
            config_dict: Logging configuration dictionary
            config_file: Path to logging configuration file
            level: Level for the package logger when using the default config
        """
        if isinstance(level, LogLevel):
            level = level.value

        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            default_config = {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
                    "detailed": {
                        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(message)s"
                    },
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "standard",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    "vet_clinic": {
                        "level": level,
                        "handlers": ["console"],
                        "propagate": False,
                    }
                },
                "root": {"level": "WARNING", "handlers": ["console"]},
            }
            logging.config.dictConfig(default_config)


class FeatureFlagManager:
    """Manager for feature flags."""

    def __init__(self, config_source: Optional[Union[str, Dict[str, Any]]] = None):
        """
        Initialize the feature flag manager.

        Args:
            config_source: Path to config file or dictionary of flags
        """
        self._flags: Dict[str, FeatureFlag] = {}

        if isinstance(config_source, str):
            self._load_from_file(config_source)
        elif isinstance(config_source, dict):
            self._load_from_dict(config_source)
        else:
            self._load_from_environment()

    def _load_from_file(self, file_path: str) -> None:
        """Load feature flags from a JSON file."""
        try:
            with open(file_path, "r") as f:
                config = json.load(f)
            self._load_from_dict(config)
        except FileNotFoundError:
            self._load_from_environment()
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in feature flag config file: {e}")

    def _load_from_dict(self, config: Dict[str, Any]) -> None:
        """Load feature flags from a dictionary."""
        for flag_name, flag_config in config.items():
            if isinstance(flag_config, bool):
                self._flags[flag_name] = FeatureFlag(
                    name=flag_name, enabled=flag_config
                )
            elif isinstance(flag_config, dict):
                self._flags[flag_name] = FeatureFlag(
                    name=flag_name,
                    enabled=flag_config.get("enabled", False),
                    description=flag_config.get("description", ""),
                    conditions=flag_config.get("conditions", {}),
                )

    def _load_from_environment(self) -> None:
        """Load feature flags from FEATURE_FLAG_* environment variables."""
        for key, value in os.environ.items():
            if key.startswith("FEATURE_FLAG_"):
                flag_name = key[13:].lower()
                self._flags[flag_name] = FeatureFlag(
                    name=flag_name,
                    enabled=value.strip().lower() in TRUTHY_VALUES,
                )

    def is_enabled(
        self, flag_name: str, attributes: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Check if a feature flag is enabled.

        Args:
            flag_name: Name of the feature flag
            attributes: Optional context attributes for condition checking

        Returns:
            True if the feature is enabled
        """
        if flag_name not in self._flags:
            return False

        return self._flags[flag_name].is_enabled_for(attributes)

    def get_flag(self, flag_name: str) -> Optional[FeatureFlag]:
        """Get a feature flag by name."""
        return self._flags.get(flag_name)

    def add_flag(self, flag: FeatureFlag) -> None:
        """Add or update a feature flag."""
        self._flags[flag.name] = flag

    def remove_flag(self, flag_name: str) -> bool:
        """Remove a feature flag."""
        if flag_name in self._flags:
            del self._flags[flag_name]
            return True
        return False

    def list_flags(self) -> List[FeatureFlag]:
        """Get a list of all feature flags."""
        return list(self._flags.values())


# Global feature flag manager instance
_feature_flag_manager: Optional[FeatureFlagManager] = None


def get_feature_flag_manager() -> FeatureFlagManager:
    """Get the global feature flag manager instance."""
    global _feature_flag_manager
    if _feature_flag_manager is None:
        _feature_flag_manager = FeatureFlagManager()
    return _feature_flag_manager


def is_feature_enabled(
    flag_name: str, attributes: Optional[Dict[str, Any]] = None
) -> bool:
    """Check a flag on the global feature flag manager."""
    return get_feature_flag_manager().is_enabled(flag_name, attributes)
