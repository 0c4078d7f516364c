"""API key service: issues and verifies opaque secrets for machine callers."""

import hashlib
import secrets
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from meterly import crud, schemas
from meterly.core.constants.plans import plan_has_feature
from meterly.core.exceptions import ApiAccessDisabledException, InvalidApiKeyException
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.plan_service import PlanService
from meterly.core.shared_models import FeatureKey
from meterly.db.session import SessionFactory, get_db_context
from meterly.schemas.api_key import DEFAULT_KEY_NAME

SECRET_SCHEME = "pk_"
SECRET_BYTES = 32
PREFIX_LENGTH = 8


def generate_secret() -> tuple[str, str]:
    """Create a new secret and its display prefix.

    The secret is ``pk_<prefix>.<raw>`` where ``raw`` is 32 random bytes in
    unpadded base64url and ``prefix`` its first eight characters.

    Returns:
        tuple[str, str]: The full secret and the display prefix.
    """
    raw = secrets.token_urlsafe(SECRET_BYTES)
    prefix = raw[:PREFIX_LENGTH]
    return f"{SECRET_SCHEME}{prefix}.{raw}", prefix


def hash_secret(secret: str) -> str:
    """One-way hash stored in place of the secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


class ApiKeyService:
    """Create, list, revoke and authenticate API keys."""

    def __init__(
        self,
        session_factory: SessionFactory,
        plan_service: PlanService,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the API key service.

        Args:
            session_factory: Factory for database sessions.
            plan_service: Checks the ``api_access`` feature on authentication.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.plan_service = plan_service
        self.logger = logger or default_logger.with_context(component="api_keys")

    async def create_key(
        self, account_id: UUID, name: Optional[str] = None
    ) -> schemas.APIKeyWithSecret:
        """Issue a key. The secret is returned here and never again."""
        secret, prefix = generate_secret()
        name = (name or "").strip() or DEFAULT_KEY_NAME
        async with get_db_context(self._session_factory) as db:
            db_obj = await crud.api_key.create(
                db,
                obj_in={
                    "account_id": account_id,
                    "name": name,
                    "prefix": prefix,
                    "key_hash": hash_secret(secret),
                },
            )
        self.logger.with_context(account_id=str(account_id)).info(
            f"Created API key {db_obj.id} ({prefix})"
        )
        return schemas.APIKeyWithSecret(
            **schemas.APIKey.model_validate(db_obj).model_dump(), secret=secret
        )

    async def list_keys(self, account_id: UUID) -> list[schemas.APIKey]:
        """Key metadata of an account, newest first."""
        async with get_db_context(self._session_factory) as db:
            keys = await crud.api_key.get_multi_for_account(db, account_id, limit=1000)
        return [schemas.APIKey.model_validate(k) for k in keys]

    async def revoke_key(self, account_id: UUID, key_id: UUID) -> None:
        """Revoke a key owned by the account. Unknown or already revoked keys are a no-op."""
        async with get_db_context(self._session_factory) as db:
            matched = await crud.api_key.revoke(db, account_id=account_id, key_id=key_id)
        self.logger.with_context(account_id=str(account_id)).info(
            f"Revoke of API key {key_id}: {'done' if matched else 'no matching key'}"
        )

    async def authenticate(self, secret: Optional[str]) -> schemas.KeyPrincipal:
        """Resolve a presented secret to its account.

        The key must exist, be unrevoked and belong to a plan with ``api_access``.
        Updating the last-used timestamp is best-effort and never fails the call.

        Raises:
            InvalidApiKeyException: If the secret is missing, malformed, unknown or revoked.
            ApiAccessDisabledException: If the owning plan lacks ``api_access``.
        """
        if not secret or not secret.startswith(SECRET_SCHEME):
            raise InvalidApiKeyException()

        async with get_db_context(self._session_factory) as db:
            key = await crud.api_key.get_active_by_hash(db, key_hash=hash_secret(secret))
        if key is None:
            raise InvalidApiKeyException()

        plan_code = await self.plan_service.get_effective_plan_code(key.account_id)
        if not plan_has_feature(plan_code, FeatureKey.API_ACCESS):
            raise ApiAccessDisabledException(FeatureKey.API_ACCESS.value, plan_code)

        await self._touch_last_used(key.id)
        return schemas.KeyPrincipal(account_id=key.account_id, key_id=key.id, plan_code=plan_code)

    async def _touch_last_used(self, key_id: UUID) -> None:
        try:
            async with get_db_context(self._session_factory) as db:
                await crud.api_key.touch_last_used(db, key_id=key_id)
        except SQLAlchemyError as e:
            self.logger.warning(f"Could not update last_used_at of API key {key_id}: {e}")
