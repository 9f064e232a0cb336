"""
Database session management utilities for the vet-clinic package.

This module provides the async session factory, session and transaction
context managers, and schema setup used by the SQL state store.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..exceptions import StoreConnectionException, TransactionException

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages database sessions and provides transaction utilities."""

    def __init__(
        self, engine: AsyncEngine, session_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize session manager with database engine.

        Args:
            engine: SQLAlchemy async engine
            session_config: Optional session configuration overrides
        """
        self.engine = engine
        self._is_initialized = False

        default_config = {
            "expire_on_commit": False,
            "autoflush": True,
        }
        if session_config:
            default_config.update(session_config)

        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=default_config.get("autoflush", True),
            expire_on_commit=default_config.get("expire_on_commit", False),
        )

    async def create_session(self) -> AsyncSession:
        """Create a new database session."""
        return self.session_factory()

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions with automatic cleanup.

        Example:
            async with session_manager.get_session() as session:
                result = await session.execute(select(StoredCollection))
        """
        session = await self.create_session()
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error, rolling back: {e}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database transactions with automatic commit/rollback.

        Example:
            async with session_manager.get_transaction() as session:
                session.add(StoredCollection(namespace="vetpro_vaccinations"))
                # Committed on success, rolled back on any exception
        """
        async with self.get_session() as session:
            async with session.begin():
                try:
                    yield session
                except Exception as e:
                    logger.error(f"Transaction error, rolling back: {e}")
                    raise

    async def execute_in_transaction(
        self, operation: Any, *args: Any, **kwargs: Any
    ) -> Any:
        """
        Execute an operation within a transaction.

        Args:
            operation: Async function taking the session as first argument
            *args: Arguments to pass to the operation
            **kwargs: Keyword arguments to pass to the operation

        Returns:
            Result of the operation

        Raises:
            StoreConnectionException: If the database cannot be reached
            TransactionException: If the transaction fails
        """
        operation_name = getattr(operation, "__name__", str(operation))
        try:
            async with self.get_transaction() as session:
                return await operation(session, *args, **kwargs)
        except OperationalError as e:
            logger.error(f"Database unreachable during '{operation_name}': {e}")
            raise StoreConnectionException(
                "Database connection failed",
                backend=self.engine.dialect.name,
                original_error=e,
            )
        except SQLAlchemyError as e:
            logger.error(f"Database operation failed: {e}")
            raise TransactionException(
                "Database transaction failed",
                operation=operation_name,
                original_error=e,
            )

    async def health_check(self) -> Dict[str, Any]:
        """
        Check that sessions and transactions work.

        Returns:
            Dictionary with health check results
        """
        health_status: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": time.time(),
            "checks": {},
        }

        try:
            start_time = time.time()
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
            health_status["checks"]["basic_query"] = {
                "status": "pass",
                "response_time": round((time.time() - start_time) * 1000, 2),
            }

            start_time = time.time()
            async with self.get_transaction() as session:
                await session.execute(text("SELECT 1"))
            health_status["checks"]["transaction"] = {
                "status": "pass",
                "response_time": round((time.time() - start_time) * 1000, 2),
            }
        except SQLAlchemyError as e:
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = {
                "status": "fail",
                "error": str(e),
                "error_type": type(e).__name__,
            }
            logger.error(f"Database error during health check: {e}")

        return health_status

    async def initialize_database(self, metadata: MetaData) -> None:
        """
        Create every table in ``metadata`` that does not exist yet.

        Raises:
            StoreConnectionException: If the schema cannot be created
        """
        logger.info("Starting database initialization...")
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise StoreConnectionException(
                "Database initialization failed",
                backend=self.engine.dialect.name,
                original_error=e,
            )
        self._is_initialized = True
        logger.info("Database tables created successfully")

    async def cleanup_database(
        self, metadata: Optional[MetaData] = None, drop_all: bool = False
    ) -> None:
        """
        Clean up database resources and optionally drop schema.

        Args:
            metadata: SQLAlchemy metadata object containing table definitions
            drop_all: Whether to drop all tables (use with caution)
        """
        if drop_all and metadata is not None:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.drop_all)
            logger.warning("All database tables dropped")

        await self.close_all_sessions()

    async def close_all_sessions(self) -> None:
        """Close all active sessions and dispose of the engine."""
        try:
            await self.engine.dispose()
            logger.info("All database sessions and connections closed")
        except Exception as e:
            logger.error(f"Error closing database sessions: {e}")

    @property
    def is_initialized(self) -> bool:
        """Check if the database has been initialized."""
        return self._is_initialized
