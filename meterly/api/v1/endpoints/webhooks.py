"""Payment processor webhooks."""

from typing import Optional

from fastapi import Depends, Header, Request, Response

from meterly.api import deps
from meterly.api.router import TrailingSlashRouter
from meterly.core.container import ServiceContainer
from meterly.core.logging import logger

router = TrailingSlashRouter()


@router.post("/stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    services: ServiceContainer = Depends(deps.get_services),
) -> Response:
    """Handle Stripe subscription lifecycle events.

    Security:
    - Verifies the webhook signature against ``STRIPE_WEBHOOK_SECRET``
    - Redelivered events are recorded once and otherwise ignored

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        services: The application services

    Returns:
        200 OK on success, 400 when the signature is missing or invalid
    """
    payload = await request.body()

    if not stripe_signature or not services.stripe_verifier.enabled:
        logger.warning("Rejected Stripe webhook without signature or configured secret")
        return Response(status_code=400)

    try:
        event = services.stripe_verifier.verify_webhook_signature(payload, stripe_signature)
    except ValueError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return Response(status_code=400)

    outcome = await services.stripe_webhooks.handle_event(event)
    logger.info(f"Stripe event {event.get('id')} ({event.get('type')}): {outcome}")
    return Response(status_code=200)
