"""Unit tests for the API key service."""

import hashlib
import re
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from meterly import crud
from meterly.core.api_key_service import generate_secret, hash_secret
from meterly.core.exceptions import ApiAccessDisabledException, InvalidApiKeyException
from meterly.schemas.api_key import DEFAULT_KEY_NAME
from tests.conftest import subscribe


@pytest.fixture
async def pro_account(services, account):
    """The default test account on a plan with API access."""
    await subscribe(services, account.id, "professional")
    return account


def test_secret_format():
    """Secrets are pk_<prefix>.<raw> with a 43 character base64url body."""
    secret, prefix = generate_secret()

    match = re.fullmatch(r"pk_([A-Za-z0-9_-]{8})\.([A-Za-z0-9_-]{43})", secret)
    assert match is not None
    assert match.group(1) == prefix
    assert match.group(2).startswith(prefix)
    assert generate_secret()[0] != secret


def test_hash_is_sha256_hex():
    """The stored hash is the SHA-256 hex digest of the secret."""
    assert hash_secret("pk_abc.def") == hashlib.sha256(b"pk_abc.def").hexdigest()
    assert len(hash_secret("x")) == 64


async def test_create_returns_secret_once(services, account):
    """The secret comes back on creation; listing shows metadata only."""
    created = await services.api_keys.create_key(account.id, "ci")

    assert created.secret.startswith(f"pk_{created.prefix}.")
    assert created.name == "ci"
    assert created.revoked is False

    listed = await services.api_keys.list_keys(account.id)
    assert [k.id for k in listed] == [created.id]
    dumped = listed[0].model_dump()
    assert "secret" not in dumped
    assert "key_hash" not in dumped


async def test_default_name(services, account):
    """Blank names fall back to the default."""
    assert (await services.api_keys.create_key(account.id)).name == DEFAULT_KEY_NAME
    assert (await services.api_keys.create_key(account.id, "  ")).name == DEFAULT_KEY_NAME


async def test_authenticate_valid_key(services, pro_account):
    """A valid key on an API plan resolves to its account and updates last use."""
    created = await services.api_keys.create_key(pro_account.id)

    principal = await services.api_keys.authenticate(created.secret)

    assert principal.account_id == pro_account.id
    assert principal.key_id == created.id
    assert principal.plan_code == "professional"
    listed = await services.api_keys.list_keys(pro_account.id)
    assert listed[0].last_used_at is not None


@pytest.mark.parametrize("secret", [None, "", "not-a-key", "pk_unknown.secret"])
async def test_authenticate_rejects_unknown_secrets(services, pro_account, secret):
    """Missing, malformed and unknown secrets are rejected."""
    with pytest.raises(InvalidApiKeyException):
        await services.api_keys.authenticate(secret)


async def test_revoked_key_is_rejected(services, pro_account):
    """Revocation is immediate and idempotent."""
    created = await services.api_keys.create_key(pro_account.id)

    await services.api_keys.revoke_key(pro_account.id, created.id)
    await services.api_keys.revoke_key(pro_account.id, created.id)

    with pytest.raises(InvalidApiKeyException):
        await services.api_keys.authenticate(created.secret)
    assert (await services.api_keys.list_keys(pro_account.id))[0].revoked is True


async def test_revoke_other_accounts_key_is_noop(services, pro_account, session_factory):
    """Revoking a key owned by someone else changes nothing."""
    from tests.conftest import create_account

    intruder = await create_account(session_factory)
    created = await services.api_keys.create_key(pro_account.id)

    await services.api_keys.revoke_key(intruder.id, created.id)

    assert (await services.api_keys.authenticate(created.secret)).key_id == created.id


async def test_plan_without_api_access(services, account):
    """A valid key is refused when the plan lacks api_access."""
    created = await services.api_keys.create_key(account.id)

    with pytest.raises(ApiAccessDisabledException) as exc_info:
        await services.api_keys.authenticate(created.secret)

    assert exc_info.value.feature == "api_access"
    assert exc_info.value.code == "api_access_disabled"


async def test_last_used_failure_does_not_fail_auth(services, pro_account):
    """The last-used update is best effort."""
    created = await services.api_keys.create_key(pro_account.id)
    failing = AsyncMock(side_effect=OperationalError("UPDATE api_key", {}, Exception("locked")))

    with patch.object(crud.api_key, "touch_last_used", failing):
        principal = await services.api_keys.authenticate(created.secret)

    assert principal.account_id == pro_account.id
    failing.assert_awaited_once()
