"""Models for the application."""

from ._base import Base
from .account import Account
from .api_key import APIKey
from .billing_event import BillingEvent
from .credit_balance import CreditBalance
from .credit_transaction import CreditTransaction
from .rate_limit_counter import RateLimitCounter
from .subscription import Subscription
from .usage_event import UsageEvent

__all__ = [
    "Base",
    "Account",
    "APIKey",
    "BillingEvent",
    "CreditBalance",
    "CreditTransaction",
    "RateLimitCounter",
    "Subscription",
    "UsageEvent",
]
