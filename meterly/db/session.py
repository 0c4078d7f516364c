"""Database session configuration.

Engines and session factories are built explicitly at process startup (the
FastAPI lifespan or the grant CLI) and handed to the services. Nothing here
connects at import time.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from meterly.core.config import Settings

SessionFactory = async_sessionmaker[AsyncSession]


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async PostgreSQL engine.

    Ledger writes rely on row locks plus conditional updates, which are correct
    under READ COMMITTED; no stronger isolation level is needed.
    """
    return create_async_engine(
        str(settings.SQLALCHEMY_ASYNC_DATABASE_URI),
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=300,  # Recycle connections after 5 minutes
        pool_timeout=30,
        isolation_level="READ COMMITTED",
        connect_args={
            "server_settings": {
                "idle_in_transaction_session_timeout": "60000",  # Kill idle transactions after 60s
            },
            "command_timeout": 60,
        },
    )


def build_session_factory(engine: AsyncEngine) -> SessionFactory:
    """Session factory bound to ``engine``. Objects stay readable after commit."""
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@asynccontextmanager
async def get_db_context(session_factory: SessionFactory) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that can be used as a context manager.

    Example:
    -------
        async with get_db_context(session_factory) as db:
            await db.execute(...)

    """
    async with session_factory() as db:
        try:
            yield db
        finally:
            await db.close()
