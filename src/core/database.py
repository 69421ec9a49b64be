"""Database configuration and session management."""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# SQLAlchemy Base for ORM models
Base = declarative_base()


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the configured backend (SQLite has no queue pool)."""
    if database_url.startswith("sqlite"):
        return {"echo": settings.debug}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_recycle": settings.database_pool_recycle,
        "echo": settings.debug,
    }


async_engine = create_async_engine(
    settings.async_database_url,
    **_engine_options(settings.async_database_url),
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)


class DatabaseManager:
    """Database connection and session management."""

    def __init__(self):
        self._async_engine = async_engine

    async def connect(self) -> None:
        """Verify the database is reachable."""
        try:
            async with self._async_engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database async connection established")
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self) -> None:
        """Close database connections."""
        await self._async_engine.dispose()
        logger.info("Database connections closed")


# Global database manager instance
_db_manager = DatabaseManager()


def get_database() -> DatabaseManager:
    """Get the database manager instance."""
    return _db_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session for FastAPI."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
