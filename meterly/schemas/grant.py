"""Monthly grant schemas."""

from typing import Optional
from uuid import UUID

from meterly.schemas._base import APIModel


class GrantResult(APIModel):
    """Per-account outcome of a monthly grant attempt.

    ``reason`` is one of ``granted``, ``already_granted``, ``unlimited_or_zero``,
    ``dry_run`` or ``error``.
    """

    account_id: UUID
    plan_code: str
    amount: int
    period: str
    granted: bool
    reason: str
    error: Optional[str] = None


class GrantRunSummary(APIModel):
    """Counts over a batch of grant results."""

    total: int = 0
    granted: int = 0
    skipped: int = 0
    failed: int = 0


class GrantRun(APIModel):
    """Report of one batch grant run."""

    period: str
    dry_run: bool
    summary: GrantRunSummary
    results: list[GrantResult]
