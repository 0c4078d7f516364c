"""Unit tests for the usage service."""

from datetime import timedelta

import pytest

from meterly import crud
from meterly.core.amounts import MAX_AMOUNT
from meterly.core.datetime_utils import utc_now_naive
from meterly.core.exceptions import (
    InsufficientCreditsException,
    InvalidAmountException,
    InvalidInputException,
)
from meterly.db.session import get_db_context


async def test_record_charges_and_returns_event(services, account):
    """A usage event consumes its cost and reports the new balance."""
    await services.ledger.grant(account.id, 10)

    result = await services.usage.record_usage_event(
        account.id, "text.generate", 3, tokens=120, request_id="r-1", metadata={"model": "x"}
    )

    assert result.new_balance == 7
    assert result.was_duplicate is False
    assert await services.ledger.get_balance(account.id) == 7
    assert await services.ledger.verify_balance(account.id)


async def test_same_request_id_charges_once(services, account):
    """Repeating a request id replays the first result without charging."""
    await services.ledger.grant(account.id, 2)

    first = await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="r1")
    second = await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="r1")
    third = await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="r1")

    assert first.new_balance == 0
    assert first.was_duplicate is False
    for replay in (second, third):
        assert replay.event_id == first.event_id
        assert replay.new_balance == 0
        assert replay.was_duplicate is True
    assert await services.ledger.get_balance(account.id) == 0


async def test_replay_ignores_later_balance_changes(services, account):
    """A replay returns the balance recorded with the first charge."""
    await services.ledger.grant(account.id, 5)
    first = await services.usage.record_usage_event(account.id, "text.generate", 1, request_id="a")
    await services.ledger.grant(account.id, 100)

    replay = await services.usage.record_usage_event(account.id, "text.generate", 1, request_id="a")

    assert replay.new_balance == first.new_balance == 4
    assert await services.ledger.get_balance(account.id) == 104


async def test_request_ids_are_scoped_per_account(services, account, session_factory):
    """Two accounts may use the same request id independently."""
    from tests.conftest import create_account

    other = await create_account(session_factory)
    await services.ledger.grant(account.id, 5)
    await services.ledger.grant(other.id, 5)

    mine = await services.usage.record_usage_event(account.id, "text.generate", 1, request_id="same")
    theirs = await services.usage.record_usage_event(other.id, "text.generate", 1, request_id="same")

    assert mine.event_id != theirs.event_id
    assert theirs.was_duplicate is False
    assert await services.ledger.get_balance(other.id) == 4


async def test_without_request_id_every_call_charges(services, account):
    """Calls without a request id are never deduplicated."""
    await services.ledger.grant(account.id, 5)
    a = await services.usage.record_usage_event(account.id, "text.generate", 1)
    b = await services.usage.record_usage_event(account.id, "text.generate", 1)
    assert a.event_id != b.event_id
    assert b.new_balance == 3


async def test_insufficient_credits_records_nothing(services, account, session_factory):
    """Neither the event nor the charge is kept when the balance is too low."""
    await services.ledger.grant(account.id, 1)

    with pytest.raises(InsufficientCreditsException):
        await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="x")

    assert await services.ledger.get_balance(account.id) == 1
    async with get_db_context(session_factory) as db:
        assert await crud.usage_event.get_by_request_id(db, account.id, "x") is None

    # The request id is free to be used once the account is topped up
    await services.ledger.grant(account.id, 5)
    result = await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="x")
    assert result.was_duplicate is False
    assert result.new_balance == 4


@pytest.mark.parametrize("cost", [0, -1, 1.5, float("nan"), None, "2"])
async def test_invalid_cost(services, account, cost):
    """Cost must be a positive integer."""
    await services.ledger.grant(account.id, 10)
    with pytest.raises(InvalidAmountException):
        await services.usage.record_usage_event(account.id, "text.generate", cost)
    assert await services.ledger.get_balance(account.id) == 10


@pytest.mark.parametrize(
    "kwargs",
    [
        {"event_type": ""},
        {"event_type": "   "},
        {"event_type": None},
        {"event_type": "text.generate", "tokens": -1},
        {"event_type": "text.generate", "tokens": MAX_AMOUNT + 1},
        {"event_type": "text.generate", "request_id": "r" * 256},
    ],
)
async def test_invalid_input(services, account, kwargs):
    """Event type is required; tokens and request id are bounded."""
    with pytest.raises(InvalidInputException):
        await services.usage.record_usage_event(account.id, cost=1, **kwargs)


async def test_history_lists_transactions_and_events(services, account):
    """History returns ledger entries and usage events, clamping its arguments."""
    await services.ledger.grant(account.id, 10)
    await services.usage.record_usage_event(account.id, "text.generate", 1, request_id="h1")
    await services.usage.record_usage_event(account.id, "image.generate", 2, request_id="h2")

    history = await services.usage.get_history(account.id, days=1, limit=1000)

    assert history.days == 7
    assert len(history.credits) == 3
    assert {u.request_id for u in history.usage} == {"h1", "h2"}
    charge = next(c for c in history.credits if c.delta == -2)
    assert charge.metadata["request_id"] == "h2"
    assert charge.metadata["event_type"] == "image.generate"


async def test_history_excludes_old_entries(services, account, session_factory):
    """Entries older than the window are left out."""
    await services.ledger.grant(account.id, 10)
    async with get_db_context(session_factory) as db:
        entries = await crud.credit.get_recent(
            db, account.id, since=utc_now_naive() - timedelta(days=1), limit=10
        )
        entries[0].created_at = utc_now_naive() - timedelta(days=40)
        await db.commit()

    history = await services.usage.get_history(account.id, days=30)
    assert history.credits == []
    assert (await services.usage.get_history(account.id, days=60)).credits[0].delta == 10
