"""API endpoints for the caller's credit balance and usage."""

from fastapi import Depends, Query, Response

from meterly import schemas
from meterly.api import deps
from meterly.api.context import ApiContext
from meterly.api.router import TrailingSlashRouter
from meterly.core.container import ServiceContainer
from meterly.core.exceptions import NotFoundException

router = TrailingSlashRouter()


@router.get("/balance", response_model=schemas.Balance)
async def get_balance(
    response: Response,
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.Balance:
    """Return the current credit balance of the caller's account.

    Args:
    ----
        response (Response): The outgoing response, marked as not cacheable.
        ctx (ApiContext): The API context.
        services (ServiceContainer): The application services.

    Returns:
    -------
        schemas.Balance: The balance.

    """
    response.headers["Cache-Control"] = "no-store"
    balance = await services.ledger.get_balance(ctx.account_id)
    return schemas.Balance(balance=balance)


@router.get("/history", response_model=schemas.CreditHistory)
async def get_history(
    days: int = Query(30, description="Look-back window in days, clamped to 7..365"),
    limit: int = Query(50, description="Maximum entries per list, clamped to 10..200"),
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.CreditHistory:
    """Recent ledger entries and usage events of the caller's account."""
    return await services.usage.get_history(ctx.account_id, days=days, limit=limit)


@router.post("/usage", response_model=schemas.UsageResult)
async def record_usage(
    usage_in: schemas.UsageEventCreate,
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.UsageResult:
    """Charge the caller's account for one action.

    Repeating a ``requestId`` returns the first result with ``wasDuplicate``
    set and charges nothing.

    Raises:
    ------
        NotFoundException: If usage recording is disabled in this environment.

    """
    if not services.settings.usage_recording_enabled:
        raise NotFoundException("Usage recording is disabled")

    result = await services.usage.record_usage_event(
        ctx.account_id,
        event_type=usage_in.event_type,
        cost=usage_in.cost,
        tokens=usage_in.tokens,
        request_id=usage_in.request_id,
        metadata=usage_in.metadata,
    )
    ctx.logger.info(
        f"Recorded usage {usage_in.event_type} cost={usage_in.cost} "
        f"balance={result.new_balance} duplicate={result.was_duplicate}"
    )
    return result
