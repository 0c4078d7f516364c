"""APIKey schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from meterly.schemas._base import APIModel

DEFAULT_KEY_NAME = "API Key"


class APIKeyCreate(APIModel):
    """Schema for creating an APIKey object."""

    name: Optional[str] = Field(default=None, max_length=255, validate_default=True)

    @field_validator("name")
    def default_name(cls, v: Optional[str]) -> str:
        """Blank names fall back to the default display name."""
        if v is None or not v.strip():
            return DEFAULT_KEY_NAME
        return v.strip()


class APIKey(APIModel):
    """API key metadata. Never includes the secret or its hash."""

    id: UUID
    name: str
    prefix: str
    revoked: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime


class APIKeyWithSecret(APIKey):
    """Returned once, on creation."""

    secret: str


class KeyPrincipal(APIModel):
    """Caller identity established from an API key."""

    account_id: UUID
    key_id: UUID
    plan_code: str


class APIKeyRevoked(APIModel):
    """Acknowledgement of a revoke request."""

    id: UUID
    revoked: bool = True
