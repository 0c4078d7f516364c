"""Unit tests for the key-authenticated external routes."""

from unittest.mock import patch

import pytest

from meterly.core.constants.rate_limits import RateLimitRule
from tests.conftest import subscribe


@pytest.fixture
async def pro_key(services, account):
    """Secret of a key on a professional account with 10 credits."""
    await subscribe(services, account.id, "professional")
    await services.ledger.grant(account.id, 10)
    return (await services.api_keys.create_key(account.id, "test")).secret


def bearer(secret):
    return {"Authorization": f"Bearer {secret}"}


async def test_ping(client, pro_key, account):
    """A valid key is accepted and rate-limit headers are set."""
    response = await client.get("/external/ping", headers=bearer(pro_key))

    assert response.status_code == 200
    assert response.json() == {"ok": True, "accountId": str(account.id), "planCode": "professional"}
    assert response.headers["X-RateLimit-Limit"] == "600"
    assert response.headers["X-RateLimit-Remaining"] == "599"
    assert int(response.headers["X-RateLimit-Reset"]) > 0


async def test_x_api_key_header(client, pro_key):
    """Keys are also accepted in X-API-Key."""
    response = await client.get("/external/ping", headers={"X-API-Key": pro_key})
    assert response.status_code == 200


@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Bearer pk_nope.nope"}, {"Authorization": "Basic abc"}],
)
async def test_invalid_key(client, headers):
    """Missing and unknown keys answer 401 invalid_api_key."""
    response = await client.get("/external/ping", headers=headers)

    assert response.status_code == 401
    assert response.json()["code"] == "invalid_api_key"


async def test_plan_without_api_access(client, services, account):
    """Keys of plans without api_access are refused with 403."""
    secret = (await services.api_keys.create_key(account.id)).secret

    response = await client.get("/external/ping", headers=bearer(secret))

    assert response.status_code == 403
    assert response.json()["code"] == "api_access_disabled"


async def test_generate_text_charges(client, services, account, pro_key):
    """Text generation charges its cost and reports the outcome."""
    body = {"prompt": "a" * 40, "requestId": "gen-1"}

    response = await client.post("/external/generate/text", json=body, headers=bearer(pro_key))

    assert response.status_code == 200
    data = response.json()
    assert data["cost"] == 1
    assert data["tokens"] == 10
    assert data["newBalance"] == 9
    assert data["wasDuplicate"] is False
    assert data["watermark"] is False
    assert data["eventType"] == "text.generate"
    assert response.headers["X-Usage-New-Balance"] == "9"
    assert response.headers["X-Usage-Was-Duplicate"] == "false"

    replay = await client.post("/external/generate/text", json=body, headers=bearer(pro_key))
    assert replay.json()["eventId"] == data["eventId"]
    assert replay.headers["X-Usage-Was-Duplicate"] == "true"
    assert await services.ledger.get_balance(account.id) == 9


async def test_generate_image_charges(client, services, account, pro_key):
    """Image generation costs 2 and estimates tokens by pixel area."""
    response = await client.post(
        "/external/generate/image",
        json={"prompt": "a cat", "width": 512, "height": 256},
        headers=bearer(pro_key),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["cost"] == 2
    assert data["tokens"] == 2
    assert data["requestId"]
    assert await services.ledger.get_balance(account.id) == 8


async def test_generate_without_credits(client, services, account):
    """Running out of credits answers 402."""
    await subscribe(services, account.id, "professional")
    secret = (await services.api_keys.create_key(account.id)).secret

    response = await client.post(
        "/external/generate/image", json={"prompt": "x"}, headers=bearer(secret)
    )

    assert response.status_code == 402
    assert response.json()["code"] == "insufficient_credits"


async def test_rate_limited(client, pro_key):
    """Calls over the window ceiling answer 429 with rate-limit headers."""
    with patch(
        "meterly.core.rate_limit_service.get_rate_limit_rule",
        return_value=RateLimitRule(window_ms=60_000, limit=2),
    ):
        statuses = [
            (await client.get("/external/ping", headers=bearer(pro_key))).status_code
            for _ in range(3)
        ]
        rejected = await client.get("/external/ping", headers=bearer(pro_key))

    assert statuses[:2] == [200, 200]
    assert rejected.status_code == 429
    assert rejected.json()["code"] == "rate_limited"
    assert rejected.headers["X-RateLimit-Remaining"] == "0"
    assert "Retry-After" in rejected.headers
