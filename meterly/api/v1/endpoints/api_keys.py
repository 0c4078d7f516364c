"""API endpoints for managing API keys."""

from typing import Optional
from uuid import UUID

from fastapi import Body, Depends

from meterly import schemas
from meterly.api import deps
from meterly.api.context import ApiContext
from meterly.api.router import TrailingSlashRouter
from meterly.core.container import ServiceContainer

router = TrailingSlashRouter()


@router.post("/", response_model=schemas.APIKeyWithSecret)
async def create_api_key(
    *,
    api_key_in: Optional[schemas.APIKeyCreate] = Body(None),
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.APIKeyWithSecret:
    """Create a new API key for the caller's account.

    The plain secret is part of this response only. It is not stored and
    cannot be retrieved again.

    Args:
    ----
        api_key_in (schemas.APIKeyCreate, optional): The API key creation data.
        ctx (ApiContext): The API context.
        services (ServiceContainer): The application services.

    Returns:
    -------
        schemas.APIKeyWithSecret: The created API key, including the secret.

    """
    name = api_key_in.name if api_key_in else None
    return await services.api_keys.create_key(ctx.account_id, name=name)


@router.get("/", response_model=list[schemas.APIKey])
async def read_api_keys(
    *,
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> list[schemas.APIKey]:
    """Retrieve all API keys of the caller's account, newest first.

    Returns:
    -------
        list[schemas.APIKey]: Key metadata without secrets.

    """
    return await services.api_keys.list_keys(ctx.account_id)


@router.delete("/{id}", response_model=schemas.APIKeyRevoked)
async def revoke_api_key(
    *,
    id: UUID,
    ctx: ApiContext = Depends(deps.get_context),
    services: ServiceContainer = Depends(deps.get_services),
) -> schemas.APIKeyRevoked:
    """Revoke an API key.

    Revoking an already revoked key, an unknown id or another account's key
    succeeds without changing anything.

    Args:
    ----
        id (UUID): The ID of the API key.
        ctx (ApiContext): The API context.
        services (ServiceContainer): The application services.

    Returns:
    -------
        schemas.APIKeyRevoked: The id that was revoked.

    """
    await services.api_keys.revoke_key(ctx.account_id, id)
    return schemas.APIKeyRevoked(id=id)
