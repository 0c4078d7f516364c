"""Unit tests for rate limit counters."""

from datetime import datetime

from meterly import crud

WINDOW = datetime(2025, 1, 1, 12, 0)


async def test_bump_returns_post_increment_count(db, account):
    """Each bump adds one hit to the window."""
    hits = [
        await crud.rate_limit.bump_rate_limit(
            db, account_id=account.id, scope="api.v1.default", window_start=WINDOW
        )
        for _ in range(3)
    ]
    assert hits == [1, 2, 3]


async def test_delete_windows_before(db, account):
    """Only windows that started before the cutoff are deleted."""
    for minute in (0, 1, 2):
        await crud.rate_limit.bump_rate_limit(
            db,
            account_id=account.id,
            scope="api.v1.default",
            window_start=WINDOW.replace(minute=minute),
        )

    assert await crud.rate_limit.delete_windows_before(db, before=WINDOW.replace(minute=2)) == 2
    assert (
        await crud.rate_limit.bump_rate_limit(
            db, account_id=account.id, scope="api.v1.default", window_start=WINDOW.replace(minute=2)
        )
        == 2
    )
