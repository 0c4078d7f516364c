"""CRUD operations for the application."""

from .crud_account import account
from .crud_api_key import api_key
from .crud_billing_event import billing_event
from .crud_credit import credit
from .crud_rate_limit import rate_limit
from .crud_subscription import subscription
from .crud_usage_event import usage_event

__all__ = [
    "account",
    "api_key",
    "billing_event",
    "credit",
    "rate_limit",
    "subscription",
    "usage_event",
]
