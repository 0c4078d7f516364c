"""CRUD operations for accounts."""

from typing import Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.crud._base import CRUDBase
from meterly.models.account import Account
from meterly.schemas.account import AccountCreate


class CRUDAccount(CRUDBase[Account, AccountCreate]):
    """CRUD operations for the Account model."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[Account]:
        """Get an account by email (case-insensitive)."""
        result = await db.execute(select(Account).where(Account.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_or_create(
        self, db: AsyncSession, *, email: str, auth0_id: Optional[str] = None
    ) -> Account:
        """Return the account for ``email``, creating it on first sight.

        Two concurrent first logins race on the unique email; the loser re-reads.
        """
        email = email.lower()
        account = await self.get_by_email(db, email=email)
        if account is not None:
            return account
        try:
            return await self.create(db, obj_in={"email": email, "auth0_id": auth0_id})
        except IntegrityError:
            await db.rollback()
            account = await self.get_by_email(db, email=email)
            if account is None:
                raise
            return account

    async def list_ids_newest_first(self, db: AsyncSession, *, limit: int) -> list[UUID]:
        """IDs of the most recently created accounts."""
        result = await db.execute(
            select(Account.id).order_by(desc(Account.created_at)).limit(limit)
        )
        return list(result.scalars().all())


account = CRUDAccount(Account)
