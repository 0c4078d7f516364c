"""API endpoints for the caller's resolved plan."""

from fastapi import Depends

from meterly import schemas
from meterly.api import deps
from meterly.api.context import ApiContext
from meterly.api.router import TrailingSlashRouter
from meterly.core.container import ServiceContainer

router = TrailingSlashRouter()


@router.get("", response_model=schemas.PlanSnapshot)
async def get_plan(
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.PlanSnapshot:
    """Return the effective plan, its features and the subscription behind it."""
    return await services.plans.get_plan_snapshot(ctx.account_id)


@router.get("/watermark", response_model=schemas.WatermarkFlag)
async def get_watermark(
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.WatermarkFlag:
    """Whether output generated for the caller must be watermarked."""
    plan_code = await services.plans.get_effective_plan_code(ctx.account_id)
    required = await services.plans.should_watermark(ctx.account_id)
    return schemas.WatermarkFlag(required=required, plan_code=plan_code)
