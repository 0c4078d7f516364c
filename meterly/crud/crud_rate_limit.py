"""CRUD operations for rate limit counters."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.core.datetime_utils import utc_now_naive
from meterly.crud._base import dialect_insert
from meterly.models.rate_limit_counter import RateLimitCounter


class CRUDRateLimit:
    """Fixed-window hit counters."""

    async def bump_rate_limit(
        self, db: AsyncSession, *, account_id: UUID, scope: str, window_start: datetime
    ) -> int:
        """Atomically add one hit to a window and return the post-increment count.

        A single ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` statement, so
        concurrent callers each observe a distinct count.
        """
        now = utc_now_naive()
        stmt = (
            dialect_insert(db, RateLimitCounter)
            .values(account_id=account_id, scope=scope, window_start=window_start, hits=1)
            .on_conflict_do_update(
                index_elements=["account_id", "scope", "window_start"],
                set_={"hits": RateLimitCounter.hits + 1, "modified_at": now},
            )
            .returning(RateLimitCounter.hits)
        )
        try:
            hits = (await db.execute(stmt)).scalar_one()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return hits

    async def delete_windows_before(self, db: AsyncSession, *, before: datetime) -> int:
        """Delete counters of windows that started before ``before``. Returns the row count."""
        result = await db.execute(
            delete(RateLimitCounter)
            .where(RateLimitCounter.window_start < before)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount


rate_limit = CRUDRateLimit()
