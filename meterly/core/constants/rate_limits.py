"""Per-plan request ceilings.

Every plan has a ``default`` entry; a scope without its own entry uses it.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from meterly.core.constants.plans import FREE_PLAN

DEFAULT_SCOPE_KEY = "default"


class RateLimitRule(BaseModel):
    """A fixed-window ceiling: at most ``limit`` hits per ``window_ms``."""

    model_config = ConfigDict(frozen=True)

    window_ms: int
    limit: int


RATE_LIMITS: dict[str, dict[str, RateLimitRule]] = {
    "free": {DEFAULT_SCOPE_KEY: RateLimitRule(window_ms=60_000, limit=30)},
    "starter": {DEFAULT_SCOPE_KEY: RateLimitRule(window_ms=60_000, limit=120)},
    "professional": {DEFAULT_SCOPE_KEY: RateLimitRule(window_ms=60_000, limit=600)},
    "enterprise": {DEFAULT_SCOPE_KEY: RateLimitRule(window_ms=60_000, limit=5000)},
}


def get_rate_limit_rule(plan_code: Optional[str], scope: str) -> RateLimitRule:
    """Resolve the rule for a plan and scope.

    Unknown plans use the free tier; scopes without an entry use the plan default.
    """
    rules = RATE_LIMITS.get(plan_code or FREE_PLAN, RATE_LIMITS[FREE_PLAN])
    return rules.get(scope, rules[DEFAULT_SCOPE_KEY])
