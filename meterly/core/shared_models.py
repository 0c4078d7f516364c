"""Shared models for the backend."""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """Subscription status enum, mirroring the payment processor's lifecycle."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"


# Statuses that make a subscription eligible to be the effective one
QUALIFYING_SUBSCRIPTION_STATUSES = (
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.TRIALING,
    SubscriptionStatus.PAST_DUE,
)


class CreditReason(str, Enum):
    """Reason codes written on credit transactions."""

    MONTHLY_GRANT = "monthly_grant"
    USAGE_CHARGE = "usage_charge"
    MANUAL_GRANT = "manual_grant"


class FeatureKey(str, Enum):
    """Plan feature flags."""

    API_ACCESS = "api_access"
    WATERMARKING = "watermarking"


class AuthMethod(str, Enum):
    """How the caller of a request was authenticated."""

    AUTH0 = "auth0"
    SYSTEM = "system"
    API_KEY = "api_key"
    CRON = "cron"
