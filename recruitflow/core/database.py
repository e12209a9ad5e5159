"""
Database engine and session factories.

The workflow store opens one short-lived session per unit of work, so the
session factory (not a request-scoped session) is what gets handed around.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings

# Base class for SQLAlchemy models
Base = declarative_base()


def create_engine_for(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine; asyncpg in production, aiosqlite in tests."""
    kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine_for(
    settings.database_url,
    echo=settings.app_env == "dev",
)

AsyncSessionLocal = create_session_factory(engine)
