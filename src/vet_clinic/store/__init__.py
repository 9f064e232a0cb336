"""
State store backends.

The clinic service writes every collection through one of these stores.
"""

from .base import Payload, StateStore
from .memory import InMemoryStateStore
from .sql import SqlStateStore

__all__ = [
    "Payload",
    "StateStore",
    "InMemoryStateStore",
    "SqlStateStore",
]
