"""Request contexts injected into endpoints."""

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from meterly import schemas
from meterly.core.logging import ContextualLogger
from meterly.core.shared_models import AuthMethod


class ApiContext(BaseModel):
    """Context of a session-authenticated request.

    Carries the resolved account and a logger pre-configured with the
    request, account and auth dimensions.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_id: str
    account: schemas.Account
    auth_method: AuthMethod
    auth_metadata: Optional[Dict[str, Any]] = None
    logger: ContextualLogger

    @property
    def account_id(self) -> UUID:
        """ID of the calling account."""
        return self.account.id

    def __str__(self) -> str:
        """String representation for logging."""
        return (
            f"ApiContext(request_id={self.request_id[:8]}..., "
            f"method={self.auth_method.value}, account={self.account.id})"
        )


class ApiKeyContext(BaseModel):
    """Context of a key-authenticated request that passed its rate limit."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    request_id: str
    principal: schemas.KeyPrincipal
    rate_limit: schemas.RateLimitDecision
    logger: ContextualLogger

    @property
    def account_id(self) -> UUID:
        """ID of the account owning the key."""
        return self.principal.account_id
