"""Operator endpoints guarded by the cron secret."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, Query

from meterly import crud, schemas
from meterly.api import deps
from meterly.api.router import TrailingSlashRouter
from meterly.core.container import ServiceContainer
from meterly.core.exceptions import NotFoundException
from meterly.core.logging import logger
from meterly.db.session import get_db_context

router = TrailingSlashRouter(dependencies=[Depends(deps.require_cron_secret)])

TRUTHY = {"1", "true", "yes"}


def parse_dry(value: Optional[str]) -> bool:
    """Interpret the ``dry`` query flag. Only ``1``, ``true`` and ``yes`` enable it."""
    return value is not None and value.strip().lower() in TRUTHY


@router.post("/monthly-grant", response_model=schemas.GrantRun)
async def run_monthly_grant(
    period: Optional[str] = Query(None, description="Grant period YYYY-MM; current month if absent"),
    limit: Optional[int] = Query(None, description="Maximum number of accounts to process"),
    dry: Optional[str] = Query(None, description="1, true or yes for a dry run"),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.GrantRun:
    """Grant every account its plan's monthly credits for ``period``.

    Safe to trigger repeatedly: accounts already granted for the period are
    reported as ``already_granted``.

    Returns:
    -------
        schemas.GrantRun: The summary and one result per account.

    """
    run = await services.grants.run_monthly_grant_for_all_users(
        period=period, limit=limit, dry_run=parse_dry(dry)
    )
    logger.info(
        f"Monthly grant run for {run.period}: {run.summary.granted} granted, "
        f"{run.summary.skipped} skipped, {run.summary.failed} failed"
    )
    return run


@router.post("/accounts/{account_id}/grant", response_model=schemas.Balance)
async def manual_grant(
    account_id: UUID,
    grant_in: schemas.ManualGrant,
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.Balance:
    """Add credits to an account outside the monthly cycle.

    Raises:
    ------
        NotFoundException: If the account does not exist.

    """
    async with get_db_context(services.session_factory) as db:
        if await crud.account.get(db, account_id) is None:
            raise NotFoundException("Account not found")

    metadata = {"note": grant_in.note} if grant_in.note else None
    balance = await services.ledger.grant(
        account_id, grant_in.amount, reason=grant_in.reason, metadata=metadata
    )
    return schemas.Balance(balance=balance)


@router.post("/rate-limits/purge")
async def purge_rate_limits(
    before: Optional[datetime] = Query(None, description="Delete windows that started before this"),
    services: ServiceContainer = Depends(deps.get_services),
) -> dict[str, int]:
    """Delete expired rate-limit counters."""
    deleted = await services.rate_limits.purge_expired(before)
    return {"deleted": deleted}
