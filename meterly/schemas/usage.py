"""Usage event schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from meterly.schemas._base import APIModel


class UsageEventCreate(APIModel):
    """Schema for recording one metered action.

    ``cost`` is validated by the usage service rather than here, so that bad
    amounts surface as ``invalid_amount`` instead of a generic 422.
    """

    event_type: str = Field(min_length=1)
    cost: Any
    tokens: Optional[int] = None
    request_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UsageEvent(APIModel):
    """A recorded usage event."""

    id: UUID
    event_type: str
    cost: int
    tokens: Optional[int] = None
    request_id: Optional[str] = None
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    created_at: datetime


class UsageResult(APIModel):
    """Outcome of charging for one action."""

    event_id: UUID
    new_balance: int
    was_duplicate: bool = False
