"""Unit tests for the Stripe webhook endpoint."""

import hashlib
import hmac
import json
import time

from tests.conftest import TEST_WEBHOOK_SECRET
from tests.unit.core.test_subscription_sync import stripe_subscription


def signed(payload: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
    """A Stripe-Signature header for ``payload``."""
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def event_payload(account_id, event_id="evt_http_1") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": "customer.subscription.created",
            "data": {"object": stripe_subscription(account_id)},
        }
    ).encode()


async def test_valid_webhook_updates_plan(client, services, account):
    """A correctly signed event is applied."""
    payload = event_payload(account.id)

    response = await client.post(
        "/webhooks/stripe", content=payload, headers={"Stripe-Signature": signed(payload)}
    )

    assert response.status_code == 200
    assert await services.plans.get_effective_plan_code(account.id) == "professional"


async def test_bad_signature(client, services, account):
    """Events signed with another secret are rejected."""
    payload = event_payload(account.id)

    response = await client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"Stripe-Signature": signed(payload, "whsec_other")},
    )

    assert response.status_code == 400
    assert await services.plans.get_effective_plan_code(account.id) == "free"


async def test_missing_signature(client, account):
    """Unsigned deliveries are rejected."""
    response = await client.post("/webhooks/stripe", content=event_payload(account.id))
    assert response.status_code == 400
