"""
Database utilities and session management.

This module provides database connection management, session handling,
and transaction utilities for the SQL state store.
"""

from .connection import (
    DatabaseConfig,
    create_engine,
    get_database_url,
    get_sqlite_url,
    check_connection,
)
from .session import SessionManager

__all__ = [
    "DatabaseConfig",
    "SessionManager",
    "create_engine",
    "get_database_url",
    "get_sqlite_url",
    "check_connection",
]
