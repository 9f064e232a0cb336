"""
Validation and name-matching utilities.

This module provides string sanitization, the product-name comparison rules
used by protocol and stock matching, and small numeric validators shared by
the schema layer.
"""

import re
import unicodedata
from decimal import Decimal
from typing import Optional, Union

_WHITESPACE = re.compile(r"\s+")


def sanitize_string(value: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize a string by normalizing unicode and trimming whitespace.

    Args:
        value: The string to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    normalized = unicodedata.normalize("NFKC", value)
    sanitized = _WHITESPACE.sub(" ", normalized.strip())

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip()

    return sanitized


def normalize_product_name(name: str) -> str:
    """Case-fold a product or species name and collapse its whitespace."""
    return sanitize_string(name).casefold()


def names_match(left: str, right: str, normalized: bool = False) -> bool:
    """
    Compare two names for protocol matching.

    Exact, case-sensitive equality unless ``normalized`` is set, in which case
    both sides are compared after :func:`normalize_product_name`.
    """
    if normalized:
        return normalize_product_name(left) == normalize_product_name(right)
    return left == right


def names_match_ignore_case(left: str, right: str) -> bool:
    """Case-insensitive exact comparison used for stock matching."""
    return left.lower() == right.lower()


def validate_non_negative(
    value: Optional[Union[int, Decimal]], field_name: str
) -> Optional[Union[int, Decimal]]:
    """
    Validate that a quantity or amount is not negative.

    Raises:
        ValueError: If the value is negative
    """
    if value is not None and value < 0:
        raise ValueError(f"{field_name} cannot be negative")
    return value


def validate_positive(value: Union[int, Decimal], field_name: str) -> Union[int, Decimal]:
    """
    Validate that a quantity is strictly positive.

    Raises:
        ValueError: If the value is zero or negative
    """
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero")
    return value


def require_text(value: Optional[str], field_name: str) -> str:
    """
    Sanitize a required text field.

    Raises:
        ValueError: If the value is missing or blank
    """
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return sanitize_string(value)
