"""Construction of the service graph.

One ``ServiceContainer`` is built per process (FastAPI lifespan or CLI run)
and passed to request handlers through dependencies.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from meterly.core.api_key_service import ApiKeyService
from meterly.core.config import Settings
from meterly.core.grant_service import GrantService
from meterly.core.ledger_service import LedgerService
from meterly.core.plan_service import PlanService
from meterly.core.rate_limit_service import RateLimitService
from meterly.core.stripe_webhook_handler import StripeWebhookHandler
from meterly.core.subscription_sync_service import SubscriptionSyncService
from meterly.core.usage_service import UsageService
from meterly.db.session import SessionFactory, build_engine, build_session_factory
from meterly.integrations.stripe_client import StripeWebhookVerifier


@dataclass
class ServiceContainer:
    """Every service of the application, wired to one session factory."""

    settings: Settings
    session_factory: SessionFactory
    ledger: LedgerService
    plans: PlanService
    usage: UsageService
    grants: GrantService
    rate_limits: RateLimitService
    api_keys: ApiKeyService
    subscriptions: SubscriptionSyncService
    stripe_webhooks: StripeWebhookHandler
    stripe_verifier: StripeWebhookVerifier

    @classmethod
    def build(cls, settings: Settings, session_factory: SessionFactory) -> "ServiceContainer":
        """Wire the services around an existing session factory."""
        plans = PlanService(session_factory)
        subscriptions = SubscriptionSyncService(session_factory, settings.stripe_price_to_plan)
        return cls(
            settings=settings,
            session_factory=session_factory,
            ledger=LedgerService(session_factory),
            plans=plans,
            usage=UsageService(session_factory),
            grants=GrantService(
                session_factory, plans, batch_limit=settings.MONTHLY_GRANT_BATCH_LIMIT
            ),
            rate_limits=RateLimitService(session_factory, plans),
            api_keys=ApiKeyService(session_factory, plans),
            subscriptions=subscriptions,
            stripe_webhooks=StripeWebhookHandler(session_factory, subscriptions),
            stripe_verifier=StripeWebhookVerifier(settings.STRIPE_WEBHOOK_SECRET),
        )


def build_runtime(settings: Settings) -> tuple[AsyncEngine, ServiceContainer]:
    """Create the engine and the services that use it. The caller disposes the engine."""
    engine = build_engine(settings)
    return engine, ServiceContainer.build(settings, build_session_factory(engine))
