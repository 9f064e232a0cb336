"""
Custom exceptions for the vet clinic package.

This module defines the exception hierarchy and custom exceptions
used throughout the treatment and inventory engine.
"""

from .core_exceptions import (  # Utility functions
    BusinessRuleException,
    ConfigurationException,
    PersistenceException,
    RecordNotFoundException,
    SchemaValidationException,
    StoreConnectionException,
    TransactionException,
    ValidationException,
    VetClinicException,
    create_error_response,
    format_validation_errors,
    handle_persistence_retry,
    log_exception_context,
)

__all__ = [
    # Exception classes
    "VetClinicException",
    "PersistenceException",
    "StoreConnectionException",
    "TransactionException",
    "ValidationException",
    "SchemaValidationException",
    "BusinessRuleException",
    "RecordNotFoundException",
    "ConfigurationException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
    "handle_persistence_retry",
    "log_exception_context",
]
