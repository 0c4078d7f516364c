"""Plan schemas."""

from typing import Optional

from meterly.schemas._base import APIModel
from meterly.schemas.subscription import Subscription


class PlanSnapshot(APIModel):
    """Resolved plan of an account with its feature table."""

    plan_code: str
    plan_name: str
    monthly_credits: Optional[int] = None
    features: dict[str, bool]
    subscription: Optional[Subscription] = None


class WatermarkFlag(APIModel):
    """Whether generated output for this account must be watermarked."""

    required: bool
    plan_code: str
