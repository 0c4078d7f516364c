"""CRUD operations for usage events."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.core.logging import logger
from meterly.core.shared_models import CreditReason
from meterly.crud.crud_credit import credit
from meterly.models.usage_event import UsageEvent
from meterly.schemas.usage import UsageResult


class CRUDUsageEvent:
    """Idempotent recording of metered actions."""

    async def get_by_request_id(
        self, db: AsyncSession, account_id: UUID, request_id: str
    ) -> Optional[UsageEvent]:
        """Get the event recorded for an account's request id, if any."""
        result = await db.execute(
            select(UsageEvent).where(
                UsageEvent.account_id == account_id, UsageEvent.request_id == request_id
            )
        )
        return result.scalar_one_or_none()

    async def get_recent(
        self, db: AsyncSession, account_id: UUID, *, since: datetime, limit: int
    ) -> list[UsageEvent]:
        """Events created since ``since``, newest first."""
        result = await db.execute(
            select(UsageEvent)
            .where(UsageEvent.account_id == account_id, UsageEvent.created_at >= since)
            .order_by(desc(UsageEvent.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def record_usage_event(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        event_type: str,
        cost: int,
        tokens: Optional[int] = None,
        request_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UsageResult:
        """Insert a usage event and charge its cost as one transaction.

        The event row is flushed before the balance is touched. Its unique
        ``(account_id, request_id)`` key makes a concurrent duplicate wait on the
        first writer and then fail, at which point the first writer's stored
        result is replayed.

        Args:
        ----
            db (AsyncSession): The database session.
            account_id (UUID): The account to charge.
            event_type (str): Opaque action type.
            cost (int): Positive credit cost, already validated.
            tokens (int, optional): Opaque token count.
            request_id (str, optional): Idempotency key.
            metadata (dict, optional): Free-form metadata.

        Returns:
        -------
            UsageResult: Event id, balance after the charge and the duplicate flag.

        Raises:
        ------
            InsufficientCreditsException: If the balance does not cover ``cost``.
                Neither the event nor the charge is kept.

        """
        if request_id:
            existing = await self.get_by_request_id(db, account_id, request_id)
            if existing is not None:
                return self._replay(existing)

        event = UsageEvent(
            account_id=account_id,
            event_type=event_type,
            cost=cost,
            tokens=tokens,
            request_id=request_id,
            meta=dict(metadata or {}),
        )
        try:
            db.add(event)
            await db.flush()
        except IntegrityError:
            await db.rollback()
            if not request_id:
                raise
            existing = await self.get_by_request_id(db, account_id, request_id)
            if existing is None:
                raise
            return self._replay(existing)

        try:
            entry = await credit.append_entry(
                db,
                account_id=account_id,
                delta=-cost,
                reason=CreditReason.USAGE_CHARGE.value,
                metadata={
                    "event_id": str(event.id),
                    "event_type": event_type,
                    "request_id": request_id,
                },
            )
            event.balance_after = entry.balance_after
            await db.flush()
            event_id, new_balance = event.id, entry.balance_after
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.with_context(account_id=str(account_id), event_type=event_type).info(
            f"Recorded usage event {event_id} costing {cost}, balance now {new_balance}"
        )
        return UsageResult(event_id=event_id, new_balance=new_balance, was_duplicate=False)

    def _replay(self, event: UsageEvent) -> UsageResult:
        return UsageResult(
            event_id=event.id, new_balance=event.balance_after, was_duplicate=True
        )


usage_event = CRUDUsageEvent()
