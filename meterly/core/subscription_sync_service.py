"""Subscription sync service: stores billing state reported by the payment processor."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from meterly import crud, schemas
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.shared_models import SubscriptionStatus
from meterly.db.session import SessionFactory, get_db_context
from meterly.models.subscription import Subscription


def _epoch_to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class SubscriptionSyncService:
    """Normalizes processor subscription objects into subscription records."""

    def __init__(
        self,
        session_factory: SessionFactory,
        price_to_plan: Optional[dict[str, str]] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the subscription sync service.

        Args:
            session_factory: Factory for database sessions.
            price_to_plan: Stripe price id to plan code.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.price_to_plan = price_to_plan or {}
        self.logger = logger or default_logger.with_context(component="subscriptions")

    @staticmethod
    def normalize_status(raw_status: Optional[str]) -> SubscriptionStatus:
        """Map a processor status to a known status; unknown values become incomplete."""
        try:
            return SubscriptionStatus(raw_status)
        except ValueError:
            return SubscriptionStatus.INCOMPLETE

    def plan_code_for_price(self, price_id: Optional[str]) -> str:
        """Plan code for a price id. Unmapped prices keep the raw id and resolve to free."""
        if price_id and price_id in self.price_to_plan:
            return self.price_to_plan[price_id]
        self.logger.warning(f"No plan mapped for Stripe price {price_id}")
        return price_id or "unknown"

    def state_from_stripe(
        self, account_id: UUID, stripe_subscription: dict[str, Any]
    ) -> schemas.SubscriptionState:
        """Build a subscription state from a Stripe subscription payload.

        Period bounds are read from the subscription, or from its first item
        on API versions that moved them there.
        """
        items = (stripe_subscription.get("items") or {}).get("data") or [{}]
        first_item = items[0]
        price_id = (first_item.get("price") or {}).get("id")
        period_start = stripe_subscription.get("current_period_start") or first_item.get(
            "current_period_start"
        )
        period_end = stripe_subscription.get("current_period_end") or first_item.get(
            "current_period_end"
        )
        return schemas.SubscriptionState(
            account_id=account_id,
            plan_code=self.plan_code_for_price(price_id),
            status=self.normalize_status(stripe_subscription.get("status")),
            current_period_start=_epoch_to_datetime(period_start),
            current_period_end=_epoch_to_datetime(period_end),
            cancel_at_period_end=bool(stripe_subscription.get("cancel_at_period_end")),
            stripe_subscription_id=stripe_subscription.get("id"),
            stripe_customer_id=stripe_subscription.get("customer"),
        )

    async def resolve_account_id(
        self, metadata: Optional[dict[str, Any]], stripe_customer_id: Optional[str]
    ) -> Optional[UUID]:
        """Find the account a processor object belongs to.

        Looks at ``metadata.account_id`` (or the older ``user_id``) first, then
        at existing subscriptions billed to the same customer.
        """
        metadata = metadata or {}
        for key in ("account_id", "user_id"):
            raw = metadata.get(key)
            if raw:
                try:
                    return UUID(str(raw))
                except ValueError:
                    self.logger.warning(f"Ignoring malformed {key} in metadata: {raw}")
        if stripe_customer_id:
            async with get_db_context(self._session_factory) as db:
                return await crud.subscription.get_account_id_by_stripe_customer(
                    db, stripe_customer_id=stripe_customer_id
                )
        return None

    async def apply_subscription_state(self, state: schemas.SubscriptionState) -> Subscription:
        """Store a subscription state; other live records of the account are canceled."""
        async with get_db_context(self._session_factory) as db:
            subscription = await crud.subscription.apply_state(db, state=state)
        self.logger.with_context(account_id=str(state.account_id)).info(
            f"Subscription {state.stripe_subscription_id} is now {state.status.value} "
            f"on plan {state.plan_code}"
        )
        return subscription
