"""CRUD operations for the APIKey model."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.core.datetime_utils import utc_now_naive
from meterly.crud._base import CRUDBase
from meterly.models.api_key import APIKey


class CRUDAPIKey(CRUDBase[APIKey, BaseModel]):
    """CRUD operations for the APIKey model."""

    async def get_active_by_hash(self, db: AsyncSession, *, key_hash: str) -> Optional[APIKey]:
        """Get a non-revoked key by the hash of its secret."""
        result = await db.execute(
            select(APIKey).where(APIKey.key_hash == key_hash, APIKey.revoked.is_(False))
        )
        return result.scalar_one_or_none()

    async def revoke(self, db: AsyncSession, *, account_id: UUID, key_id: UUID) -> bool:
        """Mark a key revoked. Scoped to the owning account; revoking twice is a no-op.

        Returns:
            bool: Whether a row matched (owned by ``account_id``).
        """
        result = await db.execute(
            update(APIKey)
            .where(APIKey.id == key_id, APIKey.account_id == account_id)
            .values(revoked=True, modified_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    async def touch_last_used(self, db: AsyncSession, *, key_id: UUID) -> None:
        """Set the last-used timestamp to now."""
        await db.execute(
            update(APIKey)
            .where(APIKey.id == key_id)
            .values(last_used_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        await db.commit()


api_key = CRUDAPIKey(APIKey)
