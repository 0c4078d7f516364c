"""Key-authenticated external routes.

Each call passes the key gate, the plan's ``api_access`` check and the rate
limiter before it reaches the handler. Generation routes then charge the
action cost through the usage meter and hand back what the generation
backend needs: the charge outcome and the watermark flag.
"""

from typing import Optional

from fastapi import Depends, Response

from meterly import schemas
from meterly.api import deps
from meterly.api.context import ApiKeyContext
from meterly.api.router import TrailingSlashRouter
from meterly.core.constants.costs import cost_for
from meterly.core.constants.plans import plan_has_feature
from meterly.core.constants.scopes import SCOPE_DEFAULT, SCOPE_GENERATE
from meterly.core.container import ServiceContainer
from meterly.core.shared_models import FeatureKey

router = TrailingSlashRouter()

TEXT_EVENT_TYPE = "text.generate"
IMAGE_EVENT_TYPE = "image.generate"
CHARS_PER_TOKEN = 4
PIXELS_PER_IMAGE_TOKEN = 65536


def text_tokens(prompt: str) -> int:
    """Rough token estimate of a text prompt."""
    return max(1, len(prompt) // CHARS_PER_TOKEN)


def image_tokens(width: int, height: int) -> int:
    """Token estimate of an image by pixel area."""
    return max(1, (width * height) // PIXELS_PER_IMAGE_TOKEN)


async def _charge(
    response: Response,
    ctx: ApiKeyContext,
    services: ServiceContainer,
    event_type: str,
    tokens: int,
    request_id: Optional[str],
    metadata: dict,
) -> schemas.GenerateAccepted:
    request_id = request_id or services.usage.new_request_id()
    cost = cost_for(event_type)
    result = await services.usage.record_usage_event(
        ctx.account_id,
        event_type=event_type,
        cost=cost,
        tokens=tokens,
        request_id=request_id,
        metadata={**metadata, "api_key_id": str(ctx.principal.key_id)},
    )
    response.headers["X-Usage-New-Balance"] = str(result.new_balance)
    response.headers["X-Usage-Was-Duplicate"] = "true" if result.was_duplicate else "false"

    ctx.logger.info(
        f"Charged {cost} for {event_type} (request {request_id}), "
        f"balance={result.new_balance} duplicate={result.was_duplicate}"
    )
    plan_code = ctx.principal.plan_code
    return schemas.GenerateAccepted(
        event_id=result.event_id,
        request_id=request_id,
        event_type=event_type,
        cost=cost,
        tokens=tokens,
        new_balance=result.new_balance,
        was_duplicate=result.was_duplicate,
        watermark=plan_has_feature(plan_code, FeatureKey.WATERMARKING),
        plan_code=plan_code,
    )


@router.get("/ping", response_model=schemas.Ping)
async def ping(
    ctx: ApiKeyContext = Depends(deps.require_api_key(SCOPE_DEFAULT)),
) -> schemas.Ping:
    """Check a key. Counts against the default rate-limit scope."""
    return schemas.Ping(account_id=ctx.account_id, plan_code=ctx.principal.plan_code)


@router.post("/generate/text", response_model=schemas.GenerateAccepted)
async def generate_text(
    request_in: schemas.TextGenerateRequest,
    response: Response,
    ctx: ApiKeyContext = Depends(deps.require_api_key(SCOPE_GENERATE)),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.GenerateAccepted:
    """Charge for a text generation.

    Args:
    ----
        request_in (schemas.TextGenerateRequest): Prompt and optional idempotency key.
        response (Response): Receives the ``X-Usage-*`` headers.
        ctx (ApiKeyContext): The key-authenticated context.
        services (ServiceContainer): The application services.

    Returns:
    -------
        schemas.GenerateAccepted: The charge outcome and watermark flag.

    """
    return await _charge(
        response,
        ctx,
        services,
        event_type=TEXT_EVENT_TYPE,
        tokens=text_tokens(request_in.prompt),
        request_id=request_in.request_id,
        metadata={"prompt_chars": len(request_in.prompt)},
    )


@router.post("/generate/image", response_model=schemas.GenerateAccepted)
async def generate_image(
    request_in: schemas.ImageGenerateRequest,
    response: Response,
    ctx: ApiKeyContext = Depends(deps.require_api_key(SCOPE_GENERATE)),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.GenerateAccepted:
    """Charge for an image generation. Same contract as the text route."""
    return await _charge(
        response,
        ctx,
        services,
        event_type=IMAGE_EVENT_TYPE,
        tokens=image_tokens(request_in.width, request_in.height),
        request_id=request_in.request_id,
        metadata={"width": request_in.width, "height": request_in.height},
    )
