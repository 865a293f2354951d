"""
Database Session Management
Engine and session handling for PostgreSQL (asyncpg) or SQLite (aiosqlite)
"""

import asyncio
from typing import AsyncGenerator, Awaitable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from fieldperm.core.config import settings
from fieldperm.core.exceptions import StoreUnavailableException
from fieldperm.core.logging import get_logger
from fieldperm.db.base import Base

logger = get_logger(__name__)

# Engine
engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine with pooling suited to the backend"""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            echo=settings.DEBUG,
            poolclass=NullPool,
        )

    return create_async_engine(
        database_url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


async def init_db(database_url: Optional[str] = None, create_tables: Optional[bool] = None) -> None:
    """
    Initialize database engine and optionally create tables

    Args:
        database_url: Overrides settings.SQLALCHEMY_DATABASE_URL
        create_tables: Defaults to True in development
    """
    global engine, async_session_maker

    url = database_url or settings.SQLALCHEMY_DATABASE_URL
    logger.info(f"Connecting to database ({url.split('://')[0]})")

    engine = create_engine(url)
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import all SQLAlchemy models to ensure they're registered with Base
    from fieldperm.db.models import Field, FieldPermission, TableMember  # noqa: F401

    if create_tables is None:
        create_tables = settings.ENVIRONMENT == "development"

    # Create tables (use migrations for production)
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")


async def close_db() -> None:
    """Close database connections"""
    global engine, async_session_maker

    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connection closed")


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory of the initialized engine"""
    if async_session_maker is None:
        raise StoreUnavailableException(message="Database is not initialized")
    return async_session_maker


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (dependency injection)"""
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


T = TypeVar("T")


async def run_db_operation(
    operation: str,
    coro: Awaitable[T],
    timeout: Optional[float] = None,
) -> T:
    """
    Await a database coroutine under the store timeout

    The coroutine is cancelled on timeout, which rolls back any open
    transaction inside it. Caller cancellation propagates unchanged.

    Raises:
        StoreUnavailableException: On timeout or database error
    """
    timeout = timeout if timeout is not None else settings.STORE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Database operation '{operation}' timed out after {timeout}s")
        raise StoreUnavailableException(
            message=f"Database operation '{operation}' timed out",
            operation=operation,
            details={"timeout_seconds": timeout},
        )
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database operation '{operation}' failed: {e}")
        raise StoreUnavailableException(
            message=f"Database operation '{operation}' failed",
            operation=operation,
            details={"error_type": type(e).__name__},
        ) from e
