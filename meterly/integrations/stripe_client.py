"""Stripe webhook verification.

The service only consumes Stripe notifications; it never calls the Stripe API.
"""

import json
from typing import Any, Optional

import stripe


class StripeWebhookVerifier:
    """Verifies webhook signatures with the endpoint's signing secret."""

    def __init__(self, webhook_secret: Optional[str]):
        """Initialize the verifier.

        Args:
            webhook_secret: The ``whsec_...`` signing secret; None disables webhooks.
        """
        self.webhook_secret = webhook_secret

    @property
    def enabled(self) -> bool:
        """Whether a signing secret is configured."""
        return bool(self.webhook_secret)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a delivery and return the decoded event.

        Raises:
            ValueError: If the payload is malformed or the signature does not match.
        """
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise ValueError(f"Invalid webhook payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid webhook signature: {e}") from e
        return json.loads(payload)
