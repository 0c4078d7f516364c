"""Credit ledger schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, Field

from meterly.schemas._base import APIModel
from meterly.schemas.usage import UsageEvent


class Balance(APIModel):
    """Current balance of the caller's account."""

    balance: int


class CreditTransaction(APIModel):
    """A single ledger entry."""

    id: UUID
    delta: int
    reason: str
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    balance_after: int
    created_at: datetime


class CreditHistory(APIModel):
    """Recent ledger entries and usage events of an account."""

    days: int
    credits: list[CreditTransaction]
    usage: list[UsageEvent]


class ManualGrant(APIModel):
    """Operator request to add credits outside the monthly cycle."""

    amount: int
    reason: str = "manual_grant"
    note: Optional[str] = None
