"""Grant service: monthly credit allotments, issued once per account and period."""

from typing import Optional
from uuid import UUID

from meterly import crud, schemas
from meterly.core.constants.plans import credits_for_plan
from meterly.core.datetime_utils import current_period, is_valid_period
from meterly.core.exceptions import DuplicateGrantPeriodException, InvalidInputException
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.plan_service import PlanService
from meterly.core.shared_models import CreditReason
from meterly.db.session import SessionFactory, get_db_context

GRANT_RUN_EVENT_TYPE = "monthly_grant_run"


class GrantService:
    """Issues each account's plan allotment exactly once per ``YYYY-MM`` period.

    Exactly-once rests on the unique ``(account_id, grant_period)`` constraint of
    the ledger: the existence check is a shortcut, and a concurrent run that
    loses the insert race reports ``already_granted``.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        plan_service: PlanService,
        batch_limit: int = 5000,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the grant service.

        Args:
            session_factory: Factory for database sessions.
            plan_service: Resolves each account's plan.
            batch_limit: Default number of accounts per batch run.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.plan_service = plan_service
        self.batch_limit = batch_limit
        self.logger = logger or default_logger.with_context(component="grants")

    def resolve_period(self, period: Optional[str]) -> str:
        """Return ``period`` if well formed, else the current UTC month."""
        if period is None or period == "":
            return current_period()
        if not is_valid_period(period):
            fallback = current_period()
            self.logger.warning(f"Invalid grant period '{period}', using {fallback}")
            return fallback
        return period

    async def ensure_monthly_grant_for_user(
        self, account_id: UUID, period: Optional[str] = None, dry_run: bool = False
    ) -> schemas.GrantResult:
        """Grant the account's monthly allotment for ``period`` unless already granted.

        Args:
            account_id: The account to grant.
            period: Grant period ``YYYY-MM``; defaults to the current UTC month.
            dry_run: Compute the outcome without writing.

        Returns:
            schemas.GrantResult: ``granted`` plus one of the reasons ``granted``,
            ``already_granted``, ``unlimited_or_zero`` or ``dry_run``.
        """
        period = self.resolve_period(period)
        plan_code = await self.plan_service.get_effective_plan_code(account_id)
        amount = credits_for_plan(plan_code) or 0
        log = self.logger.with_context(account_id=str(account_id), period=period)

        def result(granted: bool, reason: str) -> schemas.GrantResult:
            return schemas.GrantResult(
                account_id=account_id,
                plan_code=plan_code,
                amount=amount,
                period=period,
                granted=granted,
                reason=reason,
            )

        if amount <= 0:
            return result(False, "unlimited_or_zero")

        async with get_db_context(self._session_factory) as db:
            if await crud.credit.get_grant_for_period(db, account_id, period) is not None:
                return result(False, "already_granted")
            if dry_run:
                return result(False, "dry_run")
            try:
                await crud.credit.grant_credits(
                    db,
                    account_id=account_id,
                    amount=amount,
                    reason=CreditReason.MONTHLY_GRANT.value,
                    metadata={"period": period, "plan_code": plan_code},
                    grant_period=period,
                )
            except DuplicateGrantPeriodException:
                log.info("Concurrent grant won the race, reporting already_granted")
                return result(False, "already_granted")

        log.info(f"Granted {amount} monthly credits on plan {plan_code}")
        return result(True, "granted")

    async def run_monthly_grant_for_all_users(
        self,
        period: Optional[str] = None,
        limit: Optional[int] = None,
        dry_run: bool = False,
    ) -> schemas.GrantRun:
        """Run the monthly grant over the newest ``limit`` accounts.

        Accounts are processed sequentially. A failure is captured in that
        account's result (``reason="error"``) and the batch continues.

        Raises:
            InvalidInputException: If ``limit`` is not a positive integer.
        """
        period = self.resolve_period(period)
        limit = self.batch_limit if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidInputException("limit must be a positive integer")

        log = self.logger.with_context(period=period, dry_run=dry_run)
        log.info(f"Starting monthly grant run for up to {limit} accounts")

        async with get_db_context(self._session_factory) as db:
            account_ids = await crud.account.list_ids_newest_first(db, limit=limit)

        results: list[schemas.GrantResult] = []
        for account_id in account_ids:
            try:
                results.append(
                    await self.ensure_monthly_grant_for_user(account_id, period, dry_run=dry_run)
                )
            except Exception as e:
                log.with_context(account_id=str(account_id)).error(
                    f"Monthly grant failed: {e}", exc_info=True
                )
                results.append(
                    schemas.GrantResult(
                        account_id=account_id,
                        plan_code="unknown",
                        amount=0,
                        period=period,
                        granted=False,
                        reason="error",
                        error=str(e),
                    )
                )

        summary = self.summarize(results)
        log.info(
            f"Monthly grant run finished: {summary.granted} granted, "
            f"{summary.skipped} skipped, {summary.failed} failed of {summary.total}"
        )

        if not dry_run:
            async with get_db_context(self._session_factory) as db:
                await crud.billing_event.create(
                    db,
                    obj_in={
                        "event_type": GRANT_RUN_EVENT_TYPE,
                        "event_data": {
                            "period": period,
                            "limit": limit,
                            "summary": summary.model_dump(),
                        },
                    },
                )

        return schemas.GrantRun(period=period, dry_run=dry_run, summary=summary, results=results)

    @staticmethod
    def summarize(results: list[schemas.GrantResult]) -> schemas.GrantRunSummary:
        """Count granted, skipped and failed results."""
        granted = sum(1 for r in results if r.granted)
        failed = sum(1 for r in results if r.reason == "error")
        return schemas.GrantRunSummary(
            total=len(results),
            granted=granted,
            skipped=len(results) - granted - failed,
            failed=failed,
        )
