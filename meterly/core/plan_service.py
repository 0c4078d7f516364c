"""Plan service: resolves an account's effective plan and feature flags."""

from typing import Optional
from uuid import UUID

from meterly import crud, schemas
from meterly.core.constants.plans import FREE_PLAN, get_plan, is_known_plan, plan_has_feature
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.shared_models import FeatureKey
from meterly.db.session import SessionFactory, get_db_context
from meterly.models.subscription import Subscription


class PlanService:
    """Maps subscription records to one plan code and its static features."""

    def __init__(self, session_factory: SessionFactory, logger: Optional[ContextualLogger] = None):
        """Initialize the plan service.

        Args:
            session_factory: Factory for database sessions.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.logger = logger or default_logger.with_context(component="plans")

    async def get_effective_subscription(self, account_id: UUID) -> Optional[Subscription]:
        """The account's effective subscription, or None if no record qualifies."""
        async with get_db_context(self._session_factory) as db:
            return await crud.subscription.get_effective(db, account_id=account_id)

    async def get_effective_plan_code(self, account_id: UUID) -> str:
        """Plan code of the effective subscription; "free" when there is none or it is unknown."""
        subscription = await self.get_effective_subscription(account_id)
        return self._plan_code_of(subscription)

    async def feature_enabled(self, account_id: UUID, feature_key: str) -> bool:
        """Whether the account's plan has ``feature_key`` switched on."""
        return plan_has_feature(await self.get_effective_plan_code(account_id), feature_key)

    async def should_watermark(self, account_id: UUID) -> bool:
        """Whether generated output for this account must be watermarked."""
        return await self.feature_enabled(account_id, FeatureKey.WATERMARKING)

    async def get_plan_snapshot(self, account_id: UUID) -> schemas.PlanSnapshot:
        """Plan code, catalog entry and effective subscription in one view."""
        subscription = await self.get_effective_subscription(account_id)
        plan = get_plan(self._plan_code_of(subscription))
        return schemas.PlanSnapshot(
            plan_code=plan.code,
            plan_name=plan.name,
            monthly_credits=plan.monthly_credits,
            features={key.value: enabled for key, enabled in plan.features.items()},
            subscription=(
                schemas.Subscription.model_validate(subscription) if subscription else None
            ),
        )

    def _plan_code_of(self, subscription: Optional[Subscription]) -> str:
        if subscription is None:
            return FREE_PLAN
        if not is_known_plan(subscription.plan_code):
            self.logger.with_context(account_id=str(subscription.account_id)).warning(
                f"Unrecognized plan code '{subscription.plan_code}', falling back to {FREE_PLAN}"
            )
            return FREE_PLAN
        return subscription.plan_code
