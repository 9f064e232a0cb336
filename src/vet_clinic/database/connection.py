"""
Database connection utilities for the vet-clinic package.

This module provides async SQLAlchemy engine configuration and connection
management for the SQL state store. PostgreSQL is reached through asyncpg
and SQLite through aiosqlite.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from ..exceptions import ConfigurationException

logger = logging.getLogger(__name__)

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


class DatabaseConfig:
    """Configuration class for database connections."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
        echo_pool: bool = False,
    ):
        """
        Initialize database configuration.

        Args:
            database_url: PostgreSQL or SQLite connection URL
            pool_size: Number of connections to maintain in the pool
            max_overflow: Maximum number of connections that can overflow the pool
            pool_timeout: Timeout for getting connection from pool
            pool_recycle: Time in seconds to recycle connections
            echo: Whether to echo SQL statements
            echo_pool: Whether to echo pool events
        """
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.echo = echo
        self.echo_pool = echo_pool

        self._validate_database_url()

    @property
    def backend(self) -> str:
        """Backend name without the driver suffix, e.g. 'postgresql'."""
        return urlparse(self.database_url).scheme.split("+", 1)[0]

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    def _validate_database_url(self) -> None:
        """Validate the database URL format."""
        parsed = urlparse(self.database_url)
        if self.backend not in _ASYNC_DRIVERS:
            raise ConfigurationException(
                "Database URL must use postgresql:// or sqlite://",
                config_key="database_url",
            )
        if self.backend == "postgresql":
            if not parsed.hostname:
                raise ConfigurationException(
                    "Database URL must include hostname", config_key="database_url"
                )
            if not parsed.path or parsed.path == "/":
                raise ConfigurationException(
                    "Database URL must include database name",
                    config_key="database_url",
                )

    def get_async_url(self) -> str:
        """Convert database URL to async driver format if needed."""
        scheme = urlparse(self.database_url).scheme
        if "+" in scheme:
            return self.database_url
        return self.database_url.replace(
            f"{scheme}://", f"{_ASYNC_DRIVERS[scheme]}://", 1
        )


def create_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 3600,
    pool_pre_ping: bool = True,
    echo: bool = False,
    echo_pool: bool = False,
    use_null_pool: bool = False,
    connect_args: Optional[dict] = None,
) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine with proper configuration.

    SQLite engines always use NullPool.

    Args:
        database_url: PostgreSQL or SQLite connection URL
        pool_size: Number of connections to maintain in the pool
        max_overflow: Maximum number of connections that can overflow the pool
        pool_timeout: Timeout for getting connection from pool
        pool_recycle: Time in seconds to recycle connections
        pool_pre_ping: Whether to validate connections before use
        echo: Whether to echo SQL statements
        echo_pool: Whether to echo pool events
        use_null_pool: Whether to use NullPool (useful for testing)
        connect_args: Additional connection arguments

    Returns:
        Configured async SQLAlchemy engine

    Raises:
        ConfigurationException: If database URL is invalid
    """
    config = DatabaseConfig(
        database_url=database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        echo=echo,
        echo_pool=echo_pool,
    )

    async_url = config.get_async_url()

    engine_kwargs: Dict[str, Any] = {
        "echo": config.echo,
        "echo_pool": config.echo_pool,
    }

    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    if use_null_pool or config.is_sqlite:
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs.update(
            {
                "poolclass": AsyncAdaptedQueuePool,
                "pool_size": config.pool_size,
                "max_overflow": config.max_overflow,
                "pool_timeout": config.pool_timeout,
                "pool_recycle": config.pool_recycle,
                "pool_pre_ping": pool_pre_ping,
            }
        )

    try:
        engine = create_async_engine(async_url, **engine_kwargs)
        logger.info(f"Created async database engine for {config.backend}")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database engine: {e}")
        raise


async def check_connection(
    engine: AsyncEngine, max_retries: int = 3, retry_delay: float = 1.0
) -> bool:
    """
    Test database connection health with retry logic.

    Args:
        engine: SQLAlchemy async engine
        max_retries: Maximum number of retry attempts
        retry_delay: Delay between retries in seconds

    Returns:
        True if connection is healthy, False otherwise
    """
    for attempt in range(max_retries + 1):
        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection test successful")
            return True
        except Exception as e:
            if attempt < max_retries:
                logger.warning(
                    f"Database connection test failed (attempt {attempt + 1}/{max_retries + 1}): {e}"
                )
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                logger.error(
                    f"Database connection test failed after {max_retries + 1} attempts: {e}"
                )
                return False
    return False


def get_database_url(
    host: str,
    port: int = 5432,
    database: str = "postgres",
    username: str = "postgres",
    password: str = "",  # nosec B107
    driver: str = "asyncpg",
    **kwargs: Any,
) -> str:
    """
    Construct a PostgreSQL database URL.

    Args:
        host: Database host
        port: Database port
        database: Database name
        username: Database username
        password: Database password
        driver: Database driver (asyncpg for async)
        **kwargs: Additional URL parameters

    Returns:
        Formatted database URL
    """
    if password:
        auth = f"{username}:{password}"
    else:
        auth = username

    base_url = f"postgresql+{driver}://{auth}@{host}:{port}/{database}"

    if kwargs:
        params = "&".join(f"{k}={v}" for k, v in kwargs.items())
        base_url += f"?{params}"

    return base_url


def get_sqlite_url(path: str) -> str:
    """Construct an aiosqlite URL for a database file."""
    return f"sqlite+aiosqlite:///{path}"
