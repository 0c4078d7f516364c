"""Initialize the database with the first superuser account."""

from meterly import crud
from meterly.core.config import Settings
from meterly.core.logging import logger
from meterly.db.session import SessionFactory, get_db_context


async def init_db(session_factory: SessionFactory, settings: Settings) -> None:
    """Make sure the account used when auth is disabled exists.

    Args:
    ----
        session_factory (SessionFactory): Factory for database sessions.
        settings (Settings): Application settings.

    """
    async with get_db_context(session_factory) as db:
        existing = await crud.account.get_by_email(db, email=settings.FIRST_SUPERUSER)
        if existing is None:
            logger.info(f"Account {settings.FIRST_SUPERUSER} not found, creating...")
            await crud.account.get_or_create(db, email=settings.FIRST_SUPERUSER)
