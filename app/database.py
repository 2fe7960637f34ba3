"""Metadata store engine and session management."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config import Settings


def to_async_database_url(database_url: str) -> str:
    """Convert sync PostgreSQL URL to async."""
    if database_url.startswith("postgresql+asyncpg://"):
        return database_url
    return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the metadata store engine. Owned by the application lifespan."""
    return create_async_engine(
        to_async_database_url(settings.database_url),
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


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
