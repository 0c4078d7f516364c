"""Subscription schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from meterly.core.shared_models import SubscriptionStatus
from meterly.schemas._base import APIModel


class SubscriptionState(APIModel):
    """Subscription state reported by the payment processor."""

    account_id: UUID
    plan_code: str
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None


class Subscription(APIModel):
    """Stored subscription record."""

    id: UUID
    account_id: UUID
    plan_code: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: datetime
