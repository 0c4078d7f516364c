"""CRUD operations for subscriptions."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.core.datetime_utils import to_naive_utc, utc_now_naive
from meterly.core.shared_models import QUALIFYING_SUBSCRIPTION_STATUSES, SubscriptionStatus
from meterly.crud._base import CRUDBase, dialect_insert
from meterly.models.subscription import Subscription
from meterly.schemas.subscription import SubscriptionState


class CRUDSubscription(CRUDBase[Subscription, SubscriptionState]):
    """CRUD operations for the Subscription model."""

    async def get_effective(self, db: AsyncSession, *, account_id: UUID) -> Optional[Subscription]:
        """Pick the effective subscription of an account.

        Among active, trialing and past_due records: latest period end first
        (records without one sort last), then latest creation time.
        """
        query = (
            select(Subscription)
            .where(
                Subscription.account_id == account_id,
                Subscription.status.in_([s.value for s in QUALIFYING_SUBSCRIPTION_STATUSES]),
            )
            .order_by(
                Subscription.current_period_end.desc().nulls_last(),
                Subscription.created_at.desc(),
            )
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_stripe_subscription_id(
        self, db: AsyncSession, *, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        """Get a subscription by its Stripe id."""
        result = await db.execute(
            select(Subscription).where(
                Subscription.stripe_subscription_id == stripe_subscription_id
            )
        )
        return result.scalar_one_or_none()

    async def get_account_id_by_stripe_customer(
        self, db: AsyncSession, *, stripe_customer_id: str
    ) -> Optional[UUID]:
        """Account that owns any subscription billed to a Stripe customer."""
        result = await db.execute(
            select(Subscription.account_id)
            .where(Subscription.stripe_customer_id == stripe_customer_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def apply_state(self, db: AsyncSession, *, state: SubscriptionState) -> Subscription:
        """Store a reported subscription state as one transaction.

        When the incoming state qualifies as effective, every other qualifying
        record of the account is demoted to canceled first, so the account never
        holds two live subscriptions. Records are keyed by Stripe subscription id.
        """
        values = state.model_dump()
        values["status"] = state.status.value
        for field in ("current_period_start", "current_period_end"):
            if values[field] is not None:
                values[field] = to_naive_utc(values[field])
        try:
            if state.status in QUALIFYING_SUBSCRIPTION_STATUSES:
                demote = (
                    update(Subscription)
                    .where(
                        Subscription.account_id == state.account_id,
                        Subscription.status.in_(
                            [s.value for s in QUALIFYING_SUBSCRIPTION_STATUSES]
                        ),
                    )
                    .values(status=SubscriptionStatus.CANCELED.value, modified_at=utc_now_naive())
                    .execution_options(synchronize_session=False)
                )
                if state.stripe_subscription_id:
                    demote = demote.where(
                        (Subscription.stripe_subscription_id.is_(None))
                        | (Subscription.stripe_subscription_id != state.stripe_subscription_id)
                    )
                await db.execute(demote)

            if state.stripe_subscription_id:
                update_values = {
                    k: v for k, v in values.items() if k != "stripe_subscription_id"
                }
                update_values["modified_at"] = utc_now_naive()
                stmt = (
                    dialect_insert(db, Subscription)
                    .values(**values)
                    .on_conflict_do_update(
                        index_elements=["stripe_subscription_id"], set_=update_values
                    )
                    .returning(Subscription.id)
                )
                subscription_id = (await db.execute(stmt)).scalar_one()
            else:
                db_obj = Subscription(**values)
                db.add(db_obj)
                await db.flush()
                subscription_id = db_obj.id
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        return await self.get(db, subscription_id)


subscription = CRUDSubscription(Subscription)
