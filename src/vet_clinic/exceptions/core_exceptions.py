"""
Core exceptions for the vet-clinic package.

This module defines the exception hierarchy and custom exceptions
used throughout the treatment and inventory engine.
"""

import asyncio
import logging
import time
import traceback
from typing import Any, Dict, List, Optional


class VetClinicException(Exception):
    """
    Base exception class for all vet-clinic package exceptions.

    Provides a consistent interface for error handling across the package.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": time.time(),
        }

    def get_debug_info(self) -> Dict[str, Any]:
        """
        Get detailed debug information for the exception.

        Returns:
            Dictionary with debug information including traceback
        """
        debug_info = self.to_dict()
        formatted = traceback.format_exc()
        debug_info.update(
            {
                "traceback": (
                    formatted if formatted.strip() != "NoneType: None" else None
                ),
                "module": self.__class__.__module__,
                "class_name": self.__class__.__name__,
            }
        )
        return debug_info

    def log_error(
        self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR
    ) -> None:
        """
        Log the exception with appropriate level and context.

        Args:
            logger: Logger instance to use (creates default if None)
            level: Logging level to use
        """
        if logger is None:
            logger = logging.getLogger(__name__)

        log_data = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        logger.log(
            level,
            f"Exception occurred: {self.message}",
            extra={"exception_data": log_data},
        )

    def __str__(self) -> str:
        """String representation of the exception."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class PersistenceException(VetClinicException):
    """Base exception for state store errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        retry_count: int = 0,
        max_retries: int = 3,
    ):
        """
        Initialize persistence exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
            original_error: Original exception that caused this error
            retry_count: Current retry attempt count
            max_retries: Maximum number of retry attempts
        """
        super().__init__(message, error_code or "PERSISTENCE_ERROR", details)
        self.original_error = original_error
        self.retry_count = retry_count
        self.max_retries = max_retries

        if original_error and "original_error" not in self.details:
            self.details["original_error"] = str(original_error)

        self.details.update(
            {
                "retry_count": retry_count,
                "max_retries": max_retries,
                "retryable": self.is_retryable(),
            }
        )

    def is_retryable(self) -> bool:
        """
        Determine if this exception represents a retryable error.

        Returns:
            True if the operation can be retried, False otherwise
        """
        return self.retry_count < self.max_retries

    def get_retry_delay(self) -> float:
        """
        Calculate the delay before the next retry attempt using exponential backoff.

        Returns:
            Delay in seconds before next retry
        """
        if not self.is_retryable():
            return 0.0

        base_delay = 1.0
        return base_delay * (2**self.retry_count)


class StoreConnectionException(PersistenceException):
    """Exception raised when the state store backend cannot be reached."""

    def __init__(
        self,
        message: str = "State store connection failed",
        backend: Optional[str] = None,
        original_error: Optional[Exception] = None,
        retry_count: int = 0,
        max_retries: int = 3,
    ):
        """
        Initialize connection exception.

        Args:
            message: Error message
            backend: Name of the store backend
            original_error: Original exception
            retry_count: Current retry attempt count
            max_retries: Maximum number of retry attempts
        """
        details = {}
        if backend:
            details["backend"] = backend

        super().__init__(
            message=message,
            error_code="STORE_CONNECTION_ERROR",
            details=details,
            original_error=original_error,
            retry_count=retry_count,
            max_retries=max_retries,
        )

    def is_retryable(self) -> bool:
        """
        Determine if this connection error is retryable.

        Connection errors are retryable unless they indicate
        authentication or configuration issues.
        """
        if not super().is_retryable():
            return False

        if self.original_error:
            error_str = str(self.original_error).lower()
            non_retryable_patterns = [
                "authentication failed",
                "permission denied",
                "database does not exist",
                "no such table",
            ]
            if any(pattern in error_str for pattern in non_retryable_patterns):
                return False

        return True


class TransactionException(PersistenceException):
    """Exception raised when a write-through commit fails."""

    def __init__(
        self,
        message: str = "State store transaction failed",
        operation: Optional[str] = None,
        namespaces: Optional[List[str]] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize transaction exception.

        Args:
            message: Error message
            operation: Description of the failed operation
            namespaces: Namespaces that were being written
            original_error: Original exception
        """
        details: Dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if namespaces:
            details["namespaces"] = list(namespaces)

        super().__init__(
            message=message,
            error_code="STORE_TRANSACTION_ERROR",
            details=details,
            original_error=original_error,
        )


class ValidationException(VetClinicException):
    """Base exception for data validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            value: Value that failed validation
            validation_errors: Detailed validation errors
        """
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class SchemaValidationException(ValidationException):
    """Exception raised when Pydantic schema validation fails."""

    def __init__(
        self,
        message: str = "Schema validation failed",
        schema_name: Optional[str] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize schema validation exception.

        Args:
            message: Error message
            schema_name: Name of the schema that failed validation
            validation_errors: Pydantic validation errors
        """
        super().__init__(
            message=message,
            field=None,
            value=None,
            validation_errors=validation_errors,
        )
        self.error_code = "SCHEMA_VALIDATION_ERROR"
        if schema_name:
            self.details["schema_name"] = schema_name


class BusinessRuleException(ValidationException):
    """Exception raised when business rule validation fails."""

    def __init__(
        self,
        message: str = "Business rule validation failed",
        rule_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize business rule exception.

        Args:
            message: Error message
            rule_name: Name of the business rule that failed
            context: Additional context about the failure
        """
        super().__init__(
            message=message,
            field=None,
            value=None,
            validation_errors=None,
        )
        self.error_code = "BUSINESS_RULE_ERROR"
        if rule_name:
            self.details["rule_name"] = rule_name
        if context:
            self.details["context"] = context


class RecordNotFoundException(VetClinicException):
    """Exception raised when a referenced record does not exist."""

    def __init__(
        self,
        record_type: str,
        record_id: Any,
        message: Optional[str] = None,
    ):
        """
        Initialize not-found exception.

        Args:
            record_type: Kind of record that was looked up
            record_id: Identifier that was not found
            message: Optional custom message
        """
        super().__init__(
            message=message or f"{record_type} {record_id} not found",
            error_code="RECORD_NOT_FOUND",
            details={"record_type": record_type, "record_id": str(record_id)},
        )
        self.record_type = record_type
        self.record_id = record_id


class ConfigurationException(VetClinicException):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
    ):
        """
        Initialize configuration exception.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            config_value: Configuration value (will be sanitized)
        """
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value:
            details["config_value"] = self._sanitize_config_value(
                config_key, config_value
            )

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )

    @staticmethod
    def _sanitize_config_value(key: Optional[str], value: str) -> str:
        """Sanitize configuration values to avoid exposing secrets."""
        if not key:
            return "[REDACTED]"

        sensitive_keys = ["password", "secret", "key", "token", "credential", "url"]
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            return "[REDACTED]"

        return value


# Utility functions for exception handling and error formatting


def format_validation_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Format Pydantic validation errors into a user-friendly structure.

    Args:
        errors: List of Pydantic validation errors

    Returns:
        Dictionary mapping field names to lists of error messages
    """
    formatted_errors: Dict[str, List[str]] = {}

    for error in errors:
        field_path = ".".join(str(loc) for loc in error.get("loc", []))
        if not field_path:
            field_path = "root"

        message = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        if error_type == "value_error":
            formatted_message = message
        elif error_type == "missing":
            formatted_message = "This field is required"
        else:
            formatted_message = f"{message} (type: {error_type})"

        formatted_errors.setdefault(field_path, []).append(formatted_message)

    return formatted_errors


def create_error_response(
    exception: VetClinicException,
    include_debug: bool = False,
    include_traceback: bool = False,
) -> Dict[str, Any]:
    """
    Create a standardized error response from an exception.

    Args:
        exception: The exception to format
        include_debug: Whether to include debug information
        include_traceback: Whether to include traceback information

    Returns:
        Standardized error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error": {
            "type": exception.__class__.__name__,
            "code": exception.error_code,
            "message": exception.message,
        },
    }

    if exception.details:
        response["error"]["details"] = exception.details

    if include_debug:
        debug_info = exception.get_debug_info()
        response["debug"] = {
            "timestamp": debug_info["timestamp"],
            "module": debug_info["module"],
            "class_name": debug_info["class_name"],
        }

        if include_traceback and debug_info.get("traceback"):
            response["debug"]["traceback"] = debug_info["traceback"]

    return response


def handle_persistence_retry(
    operation_name: str,
    max_retries: int = 3,
    base_delay: float = 1.0,
    logger: Optional[logging.Logger] = None,
):
    """
    Decorator for retrying async state store operations.

    Only retryable PersistenceException failures are retried; anything else
    propagates on the first attempt.

    Args:
        operation_name: Name of the operation for logging
        max_retries: Maximum number of retry attempts
        base_delay: Base delay for exponential backoff
        logger: Logger instance to use

    Returns:
        Decorator function
    """

    def decorator(func):
        async def wrapper(*args, **kwargs):
            operation_logger = logger or logging.getLogger(__name__)

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except PersistenceException as e:
                    if not e.is_retryable() or attempt == max_retries:
                        operation_logger.error(
                            f"Store operation '{operation_name}' failed after {attempt + 1} attempts",
                            extra={"exception_data": e.to_dict()},
                        )
                        raise

                    delay = base_delay * (2**attempt)
                    operation_logger.warning(
                        f"Store operation '{operation_name}' failed (attempt {attempt + 1}/{max_retries + 1}), "
                        f"retrying in {delay}s",
                        extra={"exception_data": e.to_dict()},
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


def log_exception_context(
    exception: Exception,
    context: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with additional context information.

    Args:
        exception: The exception to log
        context: Additional context information
        logger: Logger instance to use
        level: Logging level
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if isinstance(exception, VetClinicException):
        log_data = exception.to_dict()
        log_data["context"] = context
        logger.log(
            level,
            f"Exception with context: {exception.message}",
            extra={"exception_data": log_data},
        )
    else:
        logger.log(
            level,
            f"Non-VetClinic exception: {str(exception)}",
            extra={
                "exception_type": exception.__class__.__name__,
                "exception_message": str(exception),
                "context": context,
            },
        )
