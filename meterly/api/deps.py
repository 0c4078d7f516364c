"""Dependencies that are used in the API endpoints."""

import hmac
import uuid
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Header, Request, Response
from fastapi_auth0 import Auth0User

from meterly import crud, schemas
from meterly.api.auth import auth0
from meterly.api.context import ApiContext, ApiKeyContext
from meterly.core.config import Settings
from meterly.core.container import ServiceContainer
from meterly.core.exceptions import InvalidApiKeyException, UnauthenticatedException
from meterly.core.logging import logger
from meterly.core.shared_models import AuthMethod
from meterly.db.session import get_db_context


def get_services(request: Request) -> ServiceContainer:
    """Services built in the application lifespan."""
    return request.app.state.services


def get_settings(services: ServiceContainer = Depends(get_services)) -> Settings:
    """Settings the services were built with."""
    return services.settings


def get_request_id(request: Request) -> str:
    """Request id assigned by the request-id middleware."""
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


async def get_session_account(
    auth0_user: Optional[Auth0User] = Depends(auth0.get_user),
    services: ServiceContainer = Depends(get_services),
) -> tuple[schemas.Account, AuthMethod]:
    """Resolve the identity provider's principal to an account.

    The principal is trusted as given; the account is created on first sight.

    Raises:
        UnauthenticatedException: If no principal with an email is attached.
    """
    if auth0_user is None or not auth0_user.email:
        raise UnauthenticatedException()

    async with get_db_context(services.session_factory) as db:
        account = await crud.account.get_or_create(
            db, email=auth0_user.email, auth0_id=auth0_user.id
        )
    auth_method = AuthMethod.AUTH0 if services.settings.AUTH_ENABLED else AuthMethod.SYSTEM
    return schemas.Account.model_validate(account), auth_method


async def get_context(
    request_id: str = Depends(get_request_id),
    session: tuple[schemas.Account, AuthMethod] = Depends(get_session_account),
) -> ApiContext:
    """Create the API context of a session-authenticated request.

    Args:
    ----
        request_id (str): The request id.
        session (tuple): The resolved account and how it was authenticated.

    Returns:
    -------
        ApiContext: Account and a logger carrying request dimensions.

    """
    account, auth_method = session
    return ApiContext(
        request_id=request_id,
        account=account,
        auth_method=auth_method,
        logger=logger.with_context(
            request_id=request_id,
            account_id=str(account.id),
            auth_method=auth_method.value,
        ),
    )


def extract_api_key(authorization: Optional[str], x_api_key: Optional[str]) -> Optional[str]:
    """Read a key from ``Authorization: Bearer <key>`` or ``X-API-Key``."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def require_api_key(scope: str) -> Callable[..., Awaitable[ApiKeyContext]]:
    """Build a dependency that authenticates an API key and admits it under ``scope``.

    The order is key check, plan feature check, then rate limit, so that
    rejected keys never consume window capacity. Rate-limit headers are set on
    the response of admitted calls.
    """

    async def dependency(
        response: Response,
        request_id: str = Depends(get_request_id),
        authorization: Optional[str] = Header(None),
        x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
        services: ServiceContainer = Depends(get_services),
    ) -> ApiKeyContext:
        secret = extract_api_key(authorization, x_api_key)
        if secret is None:
            raise InvalidApiKeyException()

        principal = await services.api_keys.authenticate(secret)
        decision = await services.rate_limits.enforce(
            principal.account_id, scope, plan_code=principal.plan_code
        )
        response.headers.update(decision.headers())

        return ApiKeyContext(
            request_id=request_id,
            principal=principal,
            rate_limit=decision,
            logger=logger.with_context(
                request_id=request_id,
                account_id=str(principal.account_id),
                auth_method=AuthMethod.API_KEY.value,
                api_key_id=str(principal.key_id),
                scope=scope,
            ),
        )

    return dependency


async def require_cron_secret(
    x_cron_secret: Optional[str] = Header(None, alias="X-Cron-Secret"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard operator endpoints with the shared cron secret.

    Raises:
        UnauthenticatedException: If no secret is configured or the header does not match.
    """
    expected = settings.CRON_SECRET
    if not expected or not x_cron_secret:
        raise UnauthenticatedException("Operator secret required")
    if not hmac.compare_digest(x_cron_secret.encode(), expected.encode()):
        raise UnauthenticatedException("Operator secret required")
