"""Webhook handler for processing Stripe events."""

from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from meterly import crud
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.subscription_sync_service import SubscriptionSyncService
from meterly.db.session import SessionFactory, get_db_context

EventHandler = Callable[[dict[str, Any], ContextualLogger], Awaitable[Optional[UUID]]]


class StripeWebhookHandler:
    """Handle verified Stripe events with idempotency.

    Each delivery is recorded in ``billing_event`` under its Stripe event id
    after it has been applied. A redelivered event is acknowledged without
    being applied again; one that was applied but not recorded is applied a
    second time, which the keyed subscription upsert tolerates.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        subscription_sync: SubscriptionSyncService,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize webhook handler.

        Args:
            session_factory: Factory for database sessions.
            subscription_sync: Stores subscription state changes.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.subscription_sync = subscription_sync
        self.logger = logger or default_logger.with_context(auth_method="stripe_webhook")

        self.event_handlers: dict[str, EventHandler] = {
            "customer.subscription.created": self._handle_subscription_changed,
            "customer.subscription.updated": self._handle_subscription_changed,
            "customer.subscription.deleted": self._handle_subscription_changed,
        }

    async def handle_event(self, event: dict[str, Any]) -> str:
        """Process a Stripe event.

        Args:
            event: The decoded event payload.

        Returns:
            str: ``processed``, ``duplicate``, ``ignored`` or ``unresolved``.
        """
        event_id = event["id"]
        event_type = event["type"]
        contextual_logger = self.logger.with_context(event_type=event_type, stripe_event_id=event_id)

        async with get_db_context(self._session_factory) as db:
            if await crud.billing_event.get_by_stripe_event_id(db, stripe_event_id=event_id):
                contextual_logger.info("Duplicate webhook delivery, skipping")
                return "duplicate"

        handler = self.event_handlers.get(event_type)
        account_id = None
        outcome = "ignored"
        if handler is None:
            contextual_logger.info(f"Unhandled webhook event type: {event_type}")
        else:
            contextual_logger.info(f"Processing webhook event: {event_type}")
            try:
                account_id = await handler(event, contextual_logger)
            except Exception as e:
                contextual_logger.error(f"Error handling {event_type}: {e}", exc_info=True)
                raise
            outcome = "processed" if account_id else "unresolved"

        async with get_db_context(self._session_factory) as db:
            await crud.billing_event.claim_stripe_event(
                db,
                stripe_event_id=event_id,
                event_type=event_type,
                account_id=account_id,
                event_data={"object_id": event["data"]["object"].get("id"), "outcome": outcome},
            )
            await db.commit()
        return outcome

    async def _handle_subscription_changed(
        self, event: dict[str, Any], contextual_logger: ContextualLogger
    ) -> Optional[UUID]:
        """Store the subscription carried by a created, updated or deleted event.

        Returns:
            The account id the subscription belongs to, or None when it cannot be resolved.
        """
        subscription = event["data"]["object"]
        account_id = await self.subscription_sync.resolve_account_id(
            subscription.get("metadata"), subscription.get("customer")
        )
        if account_id is None:
            contextual_logger.warning(
                f"No account found for subscription {subscription.get('id')}, skipping"
            )
            return None

        state = self.subscription_sync.state_from_stripe(account_id, subscription)
        await self.subscription_sync.apply_subscription_state(state)
        return account_id
