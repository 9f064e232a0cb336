"""
Default protocol catalogs shipped with the package.
"""

from .defaults import (
    DEFAULT_ANTIPARASITIC_PROTOCOLS,
    DEFAULT_VACCINATION_PROTOCOLS,
    default_antiparasitic_protocols,
    default_vaccination_protocols,
)

__all__ = [
    "DEFAULT_ANTIPARASITIC_PROTOCOLS",
    "DEFAULT_VACCINATION_PROTOCOLS",
    "default_antiparasitic_protocols",
    "default_vaccination_protocols",
]
