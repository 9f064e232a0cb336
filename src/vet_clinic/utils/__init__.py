"""
Utility functions and helper modules.

This module provides common utility functions for date handling,
validation, configuration management, and other shared functionality.
"""

from .config import (
    NORMALIZED_PROTOCOL_MATCHING,
    ConfigError,
    EngineSettings,
    EnvironmentConfig,
    FeatureFlag,
    FeatureFlagManager,
    LoggingConfigurator,
    LogLevel,
    get_feature_flag_manager,
    is_feature_enabled,
)
from .datetime_utils import (
    Clock,
    add_days,
    add_interval,
    clinic_today,
    days_until,
    get_current_local,
    get_current_utc,
    is_within_range,
    make_clock,
    parse_date,
)
from .validation import (
    names_match,
    names_match_ignore_case,
    normalize_product_name,
    require_text,
    sanitize_string,
    validate_non_negative,
    validate_positive,
)

__all__ = [
    # Date utilities
    "Clock",
    "add_days",
    "add_interval",
    "clinic_today",
    "days_until",
    "get_current_local",
    "get_current_utc",
    "is_within_range",
    "make_clock",
    "parse_date",
    # Validation helpers
    "names_match",
    "names_match_ignore_case",
    "normalize_product_name",
    "require_text",
    "sanitize_string",
    "validate_non_negative",
    "validate_positive",
    # Configuration utilities
    "NORMALIZED_PROTOCOL_MATCHING",
    "ConfigError",
    "EngineSettings",
    "EnvironmentConfig",
    "FeatureFlag",
    "FeatureFlagManager",
    "LoggingConfigurator",
    "LogLevel",
    "get_feature_flag_manager",
    "is_feature_enabled",
]
