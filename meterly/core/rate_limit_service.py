"""Rate limit service: fixed-window request ceilings per account, scope and plan."""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from meterly import crud, schemas
from meterly.core.constants.rate_limits import RATE_LIMITS, get_rate_limit_rule
from meterly.core.constants.scopes import SCOPE_DEFAULT
from meterly.core.datetime_utils import to_naive_utc, utc_now, window_bounds
from meterly.core.exceptions import RateLimitExceededException
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.plan_service import PlanService
from meterly.db.session import SessionFactory, get_db_context


class RateLimitService:
    """Counts hits in epoch-aligned fixed windows.

    Every admission increments the window counter, including rejected ones,
    so a client hammering past its limit stays rejected until the window rolls
    over.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        plan_service: PlanService,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the rate limit service.

        Args:
            session_factory: Factory for database sessions.
            plan_service: Resolves the plan when the caller does not pass one.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.plan_service = plan_service
        self.logger = logger or default_logger.with_context(component="rate_limit")

    async def admit(
        self,
        account_id: UUID,
        scope: str = SCOPE_DEFAULT,
        plan_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> schemas.RateLimitDecision:
        """Count one call and decide whether it is within the limit.

        Args:
            account_id: The calling account.
            scope: Rate-limit scope of the operation.
            plan_code: The account's plan, when already resolved.
            now: Clock override for the window computation.

        Returns:
            schemas.RateLimitDecision: The decision with limit, remaining and reset time.
        """
        if plan_code is None:
            plan_code = await self.plan_service.get_effective_plan_code(account_id)
        rule = get_rate_limit_rule(plan_code, scope)
        window_start, window_end = window_bounds(now or utc_now(), rule.window_ms)

        async with get_db_context(self._session_factory) as db:
            hits = await crud.rate_limit.bump_rate_limit(
                db, account_id=account_id, scope=scope, window_start=window_start
            )

        decision = schemas.RateLimitDecision(
            allowed=hits <= rule.limit,
            limit=rule.limit,
            remaining=max(0, rule.limit - hits),
            hits=hits,
            scope=scope,
            plan_code=plan_code,
            window_start=window_start,
            reset_at=window_end,
        )
        if not decision.allowed:
            self.logger.with_context(account_id=str(account_id), scope=scope).warning(
                f"Rate limit exceeded: {hits}/{rule.limit} on plan {plan_code}"
            )
        return decision

    async def enforce(
        self,
        account_id: UUID,
        scope: str = SCOPE_DEFAULT,
        plan_code: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> schemas.RateLimitDecision:
        """Like ``admit`` but raises when the call is rejected.

        Raises:
            RateLimitExceededException: If the window ceiling was exceeded.
        """
        decision = await self.admit(account_id, scope, plan_code=plan_code, now=now)
        if not decision.allowed:
            raise RateLimitExceededException(decision)
        return decision

    async def purge_expired(self, before: Optional[datetime] = None) -> int:
        """Delete counters of windows that can no longer be read.

        Args:
            before: Delete windows starting before this instant. Defaults to two
                of the longest configured windows ago.

        Returns:
            int: Number of deleted counters.
        """
        if before is None:
            longest_ms = max(
                rule.window_ms for rules in RATE_LIMITS.values() for rule in rules.values()
            )
            before = utc_now() - timedelta(milliseconds=2 * longest_ms)
        cutoff = to_naive_utc(before)
        async with get_db_context(self._session_factory) as db:
            deleted = await crud.rate_limit.delete_windows_before(db, before=cutoff)
        self.logger.info(f"Purged {deleted} expired rate limit windows")
        return deleted
