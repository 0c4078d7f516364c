"""Rate limit schemas."""

from datetime import datetime, timezone

from meterly.schemas._base import APIModel


class RateLimitDecision(APIModel):
    """Result of admitting one call against a fixed window."""

    allowed: bool
    limit: int
    remaining: int
    hits: int
    scope: str
    plan_code: str
    window_start: datetime
    reset_at: datetime

    def headers(self) -> dict[str, str]:
        """Standard ``X-RateLimit-*`` headers. The reset value is epoch seconds."""
        reset_at = self.reset_at
        if reset_at.tzinfo is None:
            reset_at = reset_at.replace(tzinfo=timezone.utc)
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(reset_at.timestamp())),
        }
