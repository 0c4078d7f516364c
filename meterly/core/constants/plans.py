"""Plan catalog.

Each plan code maps to a price, a monthly credit allotment and a static
feature table. A ``monthly_credits`` of ``None`` means the tier is not metered
through recurring grants (unlimited).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from meterly.core.shared_models import FeatureKey

FREE_PLAN = "free"


class PlanDefinition(BaseModel):
    """Static definition of a plan tier."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    price_usd_monthly: Optional[int]
    monthly_credits: Optional[int]
    features: dict[FeatureKey, bool]


PLANS: dict[str, PlanDefinition] = {
    "free": PlanDefinition(
        code="free",
        name="Free",
        price_usd_monthly=0,
        monthly_credits=10,
        features={FeatureKey.API_ACCESS: False, FeatureKey.WATERMARKING: True},
    ),
    "starter": PlanDefinition(
        code="starter",
        name="Starter",
        price_usd_monthly=29,
        monthly_credits=100,
        features={FeatureKey.API_ACCESS: False, FeatureKey.WATERMARKING: False},
    ),
    "professional": PlanDefinition(
        code="professional",
        name="Professional",
        price_usd_monthly=99,
        monthly_credits=500,
        features={FeatureKey.API_ACCESS: True, FeatureKey.WATERMARKING: False},
    ),
    "enterprise": PlanDefinition(
        code="enterprise",
        name="Enterprise",
        price_usd_monthly=None,  # custom contract
        monthly_credits=None,
        features={FeatureKey.API_ACCESS: True, FeatureKey.WATERMARKING: False},
    ),
}

PLAN_ORDER = ["free", "starter", "professional", "enterprise"]


def is_known_plan(plan_code: Optional[str]) -> bool:
    """Whether ``plan_code`` names a plan in the catalog."""
    return plan_code in PLANS


def get_plan(plan_code: Optional[str]) -> PlanDefinition:
    """Return the plan definition, falling back to the free tier for unknown codes."""
    return PLANS.get(plan_code or FREE_PLAN, PLANS[FREE_PLAN])


def credits_for_plan(plan_code: Optional[str]) -> Optional[int]:
    """Monthly credit allotment of a plan; ``None`` for unlimited tiers."""
    return get_plan(plan_code).monthly_credits


def plan_has_feature(plan_code: Optional[str], feature: str) -> bool:
    """Boolean lookup on the plan's static feature table. Unknown features are off."""
    try:
        key = FeatureKey(feature)
    except ValueError:
        return False
    return get_plan(plan_code).features.get(key, False)
