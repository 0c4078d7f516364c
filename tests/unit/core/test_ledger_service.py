"""Unit tests for the ledger service."""

import uuid

import pytest

from meterly import crud
from meterly.core.exceptions import (
    DuplicateGrantPeriodException,
    InsufficientCreditsException,
    InvalidAmountException,
    InvalidInputException,
)
from meterly.db.session import get_db_context


async def test_new_account_has_zero_balance(services, account):
    """An account with no transactions has a zero balance."""
    assert await services.ledger.get_balance(account.id) == 0


async def test_grant_then_consume(services, account):
    """grant 5 then consume 2 leaves 3."""
    assert await services.ledger.grant(account.id, 5, "dev_grant") == 5
    assert await services.ledger.consume(account.id, 2, "dev_consume") == 3
    assert await services.ledger.get_balance(account.id) == 3
    assert await services.ledger.verify_balance(account.id)


async def test_rejected_consume_writes_nothing(services, account, session_factory):
    """A consume that would overdraw fails and leaves the ledger untouched."""
    await services.ledger.grant(account.id, 5)
    assert await services.ledger.consume(account.id, 3, "a") == 2

    with pytest.raises(InsufficientCreditsException) as exc_info:
        await services.ledger.consume(account.id, 3, "b")

    assert exc_info.value.required == 3
    assert exc_info.value.balance == 2
    assert await services.ledger.get_balance(account.id) == 2
    async with get_db_context(session_factory) as db:
        assert await crud.credit.sum_deltas(db, account.id) == 2
        entries = await crud.credit.get_recent(
            db, account.id, since=account.created_at, limit=10
        )
    assert sorted(e.delta for e in entries) == [-3, 5]


async def test_consume_on_empty_account(services, account):
    """Consuming from an account that never had credits fails."""
    with pytest.raises(InsufficientCreditsException):
        await services.ledger.consume(account.id, 1)
    assert await services.ledger.get_balance(account.id) == 0


async def test_consume_entire_balance(services, account):
    """Spending down to exactly zero is allowed."""
    await services.ledger.grant(account.id, 4)
    assert await services.ledger.consume(account.id, 4) == 0


@pytest.mark.parametrize("amount", [0, -5, 2.5, float("nan"), float("inf"), "10", None])
async def test_invalid_amounts(services, account, amount):
    """Non-positive, fractional and non-numeric amounts are rejected for both directions."""
    with pytest.raises(InvalidAmountException):
        await services.ledger.grant(account.id, amount)
    with pytest.raises(InvalidAmountException):
        await services.ledger.consume(account.id, amount)
    assert await services.ledger.get_balance(account.id) == 0


async def test_transactions_record_balance_after(services, account, session_factory):
    """Every entry carries the balance it produced and its metadata."""
    await services.ledger.grant(account.id, 10, metadata={"note": "welcome"})
    await services.ledger.consume(account.id, 4, metadata={"job": "x"})

    async with get_db_context(session_factory) as db:
        entries = await crud.credit.get_recent(
            db, account.id, since=account.created_at, limit=10
        )
    by_delta = {e.delta: e for e in entries}
    assert by_delta[10].balance_after == 10
    assert by_delta[10].meta == {"note": "welcome"}
    assert by_delta[10].reason == "manual_grant"
    assert by_delta[-4].balance_after == 6
    assert by_delta[-4].reason == "usage_charge"


async def test_empty_reason_is_rejected(services, account):
    """A reason code is required."""
    with pytest.raises(InvalidInputException):
        await services.ledger.grant(account.id, 1, reason="  ")


async def test_monthly_grant_requires_period(services, account):
    """Monthly grants must be tagged with a valid period."""
    with pytest.raises(InvalidInputException):
        await services.ledger.grant(account.id, 10, reason="monthly_grant")
    with pytest.raises(InvalidInputException):
        await services.ledger.grant(
            account.id, 10, reason="monthly_grant", metadata={"period": "2025-13"}
        )


async def test_monthly_grant_period_is_unique(services, account):
    """The same period cannot be granted twice through the ledger."""
    metadata = {"period": "2025-01", "plan_code": "free"}
    assert await services.ledger.grant(account.id, 10, "monthly_grant", metadata) == 10

    with pytest.raises(DuplicateGrantPeriodException):
        await services.ledger.grant(account.id, 10, "monthly_grant", metadata)

    assert await services.ledger.get_balance(account.id) == 10
    # A different period is a new grant
    await services.ledger.grant(account.id, 10, "monthly_grant", {"period": "2025-02"})
    assert await services.ledger.get_balance(account.id) == 20


async def test_accounts_are_isolated(services, account, session_factory):
    """Balances of different accounts never mix."""
    from tests.conftest import create_account

    other = await create_account(session_factory)
    await services.ledger.grant(account.id, 7)
    await services.ledger.grant(other.id, 2)
    assert await services.ledger.get_balance(account.id) == 7
    assert await services.ledger.get_balance(other.id) == 2
    assert await services.ledger.get_balance(uuid.uuid4()) == 0
