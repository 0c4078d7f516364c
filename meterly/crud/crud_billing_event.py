"""CRUD operations for billing events."""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.crud._base import CRUDBase, dialect_insert
from meterly.models.billing_event import BillingEvent


class CRUDBillingEvent(CRUDBase[BillingEvent, BaseModel]):
    """CRUD operations for the BillingEvent audit log."""

    async def get_by_stripe_event_id(
        self, db: AsyncSession, *, stripe_event_id: str
    ) -> Optional[BillingEvent]:
        """Get a recorded webhook delivery by Stripe event id."""
        result = await db.execute(
            select(BillingEvent).where(BillingEvent.stripe_event_id == stripe_event_id)
        )
        return result.scalar_one_or_none()

    async def claim_stripe_event(
        self,
        db: AsyncSession,
        *,
        stripe_event_id: str,
        event_type: str,
        account_id: Optional[UUID] = None,
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Insert the delivery record unless it already exists. Does not commit.

        Returns:
            bool: True for the first delivery, False for a redelivery.
        """
        stmt = (
            dialect_insert(db, BillingEvent)
            .values(
                stripe_event_id=stripe_event_id,
                event_type=event_type,
                account_id=account_id,
                event_data=event_data,
            )
            .on_conflict_do_nothing(index_elements=["stripe_event_id"])
            .returning(BillingEvent.id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None


billing_event = CRUDBillingEvent(BillingEvent)
