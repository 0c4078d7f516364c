# flake8: noqa: F401
"""Schemas for the application."""

from .account import Account, AccountCreate
from .api_key import APIKey, APIKeyCreate, APIKeyRevoked, APIKeyWithSecret, KeyPrincipal
from .credit import Balance, CreditHistory, CreditTransaction, ManualGrant
from .external import GenerateAccepted, ImageGenerateRequest, Ping, TextGenerateRequest
from .grant import GrantResult, GrantRun, GrantRunSummary
from .plan import PlanSnapshot, WatermarkFlag
from .rate_limit import RateLimitDecision
from .subscription import Subscription, SubscriptionState
from .usage import UsageEvent, UsageEventCreate, UsageResult
