"""Database configuration and connection management."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import settings
from app.core.exceptions import StoreException

logger = structlog.get_logger(__name__)

# Convert sync PostgreSQL URL to async
DATABASE_URL = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")

# Create async engine with connection pooling
engine: AsyncEngine = create_async_engine(
    DATABASE_URL,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
    pool_recycle=3600,
    connect_args={
        "server_settings": {
            "application_name": settings.app_name,
        },
    },
)

# Async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for work that must release its connection early.

    WebSocket dependencies live as long as the socket, so the handshake opens
    and closes its own session instead of holding one from get_db.
    """
    return AsyncSessionLocal


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


@asynccontextmanager
async def store_operation(db: AsyncSession, operation: str, **context: Any) -> AsyncIterator[None]:
    """
    Translate database failures into StoreException.

    Args:
        db: Session the operation runs on; rolled back on failure
        operation: Operation name for the log line
        context: Extra log context (user id, bookmark id). Never the raw token.
    """
    try:
        yield
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("store_operation_failed", operation=operation, error=str(e), **context)
        raise StoreException() from e


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps returned by drivers without tz support."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
