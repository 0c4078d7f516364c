"""Ledger service: balance reads, grants and consumes."""

from typing import Any, Optional
from uuid import UUID

from meterly import crud
from meterly.core.amounts import validate_amount
from meterly.core.datetime_utils import is_valid_period
from meterly.core.exceptions import InvalidInputException
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.core.shared_models import CreditReason
from meterly.db.session import SessionFactory, get_db_context


class LedgerService:
    """Atomic balance primitives over the credit ledger.

    Each call runs in its own session and transaction; see ``crud.credit`` for
    how the balance row and the transaction log are kept in step.
    """

    def __init__(self, session_factory: SessionFactory, logger: Optional[ContextualLogger] = None):
        """Initialize the ledger service.

        Args:
            session_factory: Factory for database sessions.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.logger = logger or default_logger.with_context(component="ledger")

    async def get_balance(self, account_id: UUID) -> int:
        """Current balance of an account."""
        async with get_db_context(self._session_factory) as db:
            return await crud.credit.get_credit_balance(db, account_id)

    async def grant(
        self,
        account_id: UUID,
        amount: Any,
        reason: str = CreditReason.MANUAL_GRANT.value,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Append a positive transaction and return the new balance.

        A ``monthly_grant`` must carry its ``period`` in metadata; the period
        is enforced unique per account.

        Raises:
            InvalidAmountException: If ``amount`` is not a positive integer.
            InvalidInputException: If the reason is empty or a monthly grant has no period.
            DuplicateGrantPeriodException: If the period was already granted.
        """
        amount = validate_amount(amount)
        reason = self._validate_reason(reason)
        grant_period = None
        if reason == CreditReason.MONTHLY_GRANT.value:
            grant_period = (metadata or {}).get("period")
            if not is_valid_period(grant_period):
                raise InvalidInputException("Monthly grants require a 'period' of the form YYYY-MM")

        async with get_db_context(self._session_factory) as db:
            return await crud.credit.grant_credits(
                db,
                account_id=account_id,
                amount=amount,
                reason=reason,
                metadata=metadata,
                grant_period=grant_period,
            )

    async def consume(
        self,
        account_id: UUID,
        amount: Any,
        reason: str = CreditReason.USAGE_CHARGE.value,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Append a negative transaction if the balance covers it; return the new balance.

        Raises:
            InvalidAmountException: If ``amount`` is not a positive integer.
            InsufficientCreditsException: If the balance would go negative. Nothing is written.
        """
        amount = validate_amount(amount)
        reason = self._validate_reason(reason)
        async with get_db_context(self._session_factory) as db:
            try:
                return await crud.credit.consume_credits(
                    db, account_id=account_id, amount=amount, reason=reason, metadata=metadata
                )
            except Exception as e:
                self.logger.with_context(account_id=str(account_id)).warning(
                    f"Consume of {amount} credits ({reason}) rejected: {e}"
                )
                raise

    async def verify_balance(self, account_id: UUID) -> bool:
        """Whether the stored balance equals the sum of the account's deltas."""
        async with get_db_context(self._session_factory) as db:
            stored = await crud.credit.get_credit_balance(db, account_id)
            computed = await crud.credit.sum_deltas(db, account_id)
        if stored != computed:
            self.logger.with_context(account_id=str(account_id)).error(
                f"Balance drift: stored {stored}, ledger sum {computed}"
            )
        return stored == computed

    @staticmethod
    def _validate_reason(reason: Any) -> str:
        if not isinstance(reason, str) or not reason.strip():
            raise InvalidInputException("A non-empty reason code is required")
        return reason.strip()
