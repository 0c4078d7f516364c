"""Unit tests for the rate limit service."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from meterly.core.constants.rate_limits import RateLimitRule
from meterly.core.constants.scopes import SCOPE_DEFAULT, SCOPE_GENERATE
from meterly.core.exceptions import RateLimitExceededException

NOW = datetime(2025, 1, 1, 12, 0, 5)


@pytest.fixture
def tiny_limit():
    """Limit every plan and scope to 3 hits per minute."""
    with patch(
        "meterly.core.rate_limit_service.get_rate_limit_rule",
        return_value=RateLimitRule(window_ms=60_000, limit=3),
    ):
        yield


async def test_n_plus_first_call_is_rejected(services, account, tiny_limit):
    """Calls up to the limit pass; the next one is rejected."""
    decisions = [await services.rate_limits.admit(account.id, now=NOW) for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].hits == 4
    assert decisions[0].reset_at == datetime(2025, 1, 1, 12, 1, 0)
    assert decisions[0].window_start == datetime(2025, 1, 1, 12, 0, 0)


async def test_rejected_calls_still_count(services, account, tiny_limit):
    """The window keeps counting after it is exhausted."""
    for _ in range(5):
        decision = await services.rate_limits.admit(account.id, now=NOW)
    assert decision.hits == 5
    assert decision.allowed is False


async def test_next_window_resets(services, account, tiny_limit):
    """An exhausted window does not affect the following one."""
    for _ in range(4):
        await services.rate_limits.admit(account.id, now=NOW)

    decision = await services.rate_limits.admit(account.id, now=NOW + timedelta(minutes=1))

    assert decision.allowed is True
    assert decision.hits == 1


async def test_scopes_and_accounts_are_independent(services, account, session_factory, tiny_limit):
    """Counters are keyed by account, scope and window."""
    from tests.conftest import create_account

    other = await create_account(session_factory)
    for _ in range(3):
        await services.rate_limits.admit(account.id, SCOPE_DEFAULT, now=NOW)

    assert (await services.rate_limits.admit(account.id, SCOPE_GENERATE, now=NOW)).hits == 1
    assert (await services.rate_limits.admit(other.id, SCOPE_DEFAULT, now=NOW)).hits == 1


async def test_limit_follows_plan(services, account):
    """Free accounts get the free tier ceiling; unknown scopes use the default rule."""
    decision = await services.rate_limits.admit(account.id, "api.v1.unknown", now=NOW)
    assert decision.limit == 30
    assert decision.plan_code == "free"

    pro = await services.rate_limits.admit(account.id, plan_code="professional", now=NOW)
    assert pro.limit == 600


async def test_enforce_raises_with_decision(services, account, tiny_limit):
    """enforce raises once the ceiling is exceeded and carries the headers."""
    for _ in range(3):
        await services.rate_limits.enforce(account.id, now=NOW)

    with pytest.raises(RateLimitExceededException) as exc_info:
        await services.rate_limits.enforce(account.id, now=NOW)

    headers = exc_info.value.decision.headers()
    assert headers["X-RateLimit-Limit"] == "3"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["X-RateLimit-Reset"] == str(
        int(datetime(2025, 1, 1, 12, 1, tzinfo=timezone.utc).timestamp())
    )


async def test_purge_expired(services, account, tiny_limit):
    """Old windows are deleted; the current one survives."""
    await services.rate_limits.admit(account.id, now=NOW - timedelta(hours=1))
    await services.rate_limits.admit(account.id, now=NOW)

    deleted = await services.rate_limits.purge_expired(before=NOW - timedelta(minutes=5))

    assert deleted == 1
    assert (await services.rate_limits.admit(account.id, now=NOW)).hits == 2
