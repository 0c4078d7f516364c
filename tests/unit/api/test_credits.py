"""Unit tests for the session-authenticated credit endpoints."""

import pytest


async def test_balance(client, services, account):
    """The balance is returned uncached."""
    await services.ledger.grant(account.id, 12)

    response = await client.get("/credits/balance")

    assert response.status_code == 200
    assert response.json() == {"balance": 12}
    assert response.headers["Cache-Control"] == "no-store"


async def test_record_usage(client, services, account):
    """Usage is charged once per request id."""
    await services.ledger.grant(account.id, 5)
    body = {"eventType": "text.generate", "cost": 2, "tokens": 10, "requestId": "r-1"}

    first = await client.post("/credits/usage", json=body)
    second = await client.post("/credits/usage", json=body)

    assert first.status_code == 200
    assert first.json()["newBalance"] == 3
    assert first.json()["wasDuplicate"] is False
    assert second.json()["wasDuplicate"] is True
    assert second.json()["eventId"] == first.json()["eventId"]
    assert await services.ledger.get_balance(account.id) == 3


async def test_record_usage_insufficient(client, services, account):
    """Overdraws map to 402 with a stable code."""
    await services.ledger.grant(account.id, 1)

    response = await client.post("/credits/usage", json={"eventType": "image.generate", "cost": 2})

    assert response.status_code == 402
    assert response.json()["code"] == "insufficient_credits"
    assert await services.ledger.get_balance(account.id) == 1


@pytest.mark.parametrize("cost", [0, -3, 1.5, "ten", 3_000_000_000])
async def test_record_usage_invalid_amount(client, services, account, cost):
    """Bad costs map to 400 invalid_amount."""
    await services.ledger.grant(account.id, 10)

    response = await client.post("/credits/usage", json={"eventType": "x", "cost": cost})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_amount"


async def test_record_usage_missing_event_type(client):
    """Schema violations are reported as 422."""
    response = await client.post("/credits/usage", json={"cost": 1})
    assert response.status_code == 422


async def test_record_usage_disabled(client, services):
    """The endpoint is hidden when usage recording is off."""
    services.settings.USAGE_RECORDING_ENABLED = False

    response = await client.post("/credits/usage", json={"eventType": "x", "cost": 1})

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


async def test_history(client, services, account):
    """History lists ledger entries and usage events in camelCase."""
    await services.ledger.grant(account.id, 5)
    await services.usage.record_usage_event(account.id, "text.generate", 1, request_id="h")

    response = await client.get("/credits/history", params={"days": 3, "limit": 500})

    assert response.status_code == 200
    body = response.json()
    assert body["days"] == 7
    assert {c["delta"] for c in body["credits"]} == {5, -1}
    assert body["credits"][0]["balanceAfter"] in (4, 5)
    assert body["usage"][0]["requestId"] == "h"


async def test_unauthenticated(app, client):
    """Without a principal the session routes answer 401."""
    from meterly.api import deps
    from meterly.core.exceptions import UnauthenticatedException

    async def no_principal():
        raise UnauthenticatedException()

    app.dependency_overrides[deps.get_session_account] = no_principal

    response = await client.get("/credits/balance")

    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"
