"""
Database connection management for the smart ticket queue.

Provides async engine and session factories. The ticket store is an optional
collaborator: when no DATABASE_URL is configured, ``create_engine_from_settings``
returns None and callers run with the smart sort feature disabled.

Pool Configuration:
- Development defaults: 5 connections + 5 overflow = 10 max concurrent
- Pool pre-ping enabled for connection health checks
- Automatic connection recycling every 30 minutes
"""

from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from smartqueue.core.config import Settings
from smartqueue.middleware.logging_config import get_logger

logger = get_logger(__name__)

# Base for declarative models
Base = declarative_base()


def create_engine_from_settings(settings: Settings) -> Optional[AsyncEngine]:
    """
    Build the async engine described by settings.

    Returns None when the database is not configured.
    """
    url = settings.async_database_url
    if not url:
        logger.warning(
            "database_not_configured",
            impact="smart sort disabled",
            action_required="Set DATABASE_URL",
        )
        return None

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.db_echo)
    else:
        engine = create_async_engine(
            url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=settings.db_pool_pre_ping,
            echo=settings.db_echo,
        )

    logger.info(
        "database_engine_created",
        dialect=engine.dialect.name,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to the given engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


async def ping(engine: AsyncEngine) -> bool:
    """Return True if a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False


async def close_db(engine: Optional[AsyncEngine]) -> None:
    """Dispose of the engine's connection pool."""
    if engine is None:
        return
    logger.info("database_closing")
    await engine.dispose()
    logger.info("database_closed")
