"""CRUD operations for the credit ledger.

Every balance change goes through ``append_entry``: the ``credit_balance`` row
is moved by a single conditional ``UPDATE ... RETURNING`` and the matching
``credit_transaction`` row is inserted in the same transaction. Concurrent
writers on one account serialize on that row lock, so a consume can never
observe a stale balance.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from meterly.core.amounts import validate_amount
from meterly.core.datetime_utils import utc_now_naive
from meterly.core.exceptions import DuplicateGrantPeriodException, InsufficientCreditsException
from meterly.core.logging import logger
from meterly.core.shared_models import CreditReason
from meterly.crud._base import dialect_insert
from meterly.models.credit_balance import CreditBalance
from meterly.models.credit_transaction import CreditTransaction


class CRUDCredit:
    """Ledger primitives: read balance, grant and consume."""

    async def get_credit_balance(self, db: AsyncSession, account_id: UUID) -> int:
        """Current balance of an account; 0 when it never had a ledger entry."""
        result = await db.execute(
            select(CreditBalance.balance).where(CreditBalance.account_id == account_id)
        )
        return result.scalar_one_or_none() or 0

    async def sum_deltas(self, db: AsyncSession, account_id: UUID) -> int:
        """Recompute the balance from the transaction log."""
        result = await db.execute(
            select(func.coalesce(func.sum(CreditTransaction.delta), 0)).where(
                CreditTransaction.account_id == account_id
            )
        )
        return int(result.scalar_one())

    async def get_grant_for_period(
        self, db: AsyncSession, account_id: UUID, period: str
    ) -> Optional[CreditTransaction]:
        """Get the monthly grant transaction of an account for a period, if any."""
        result = await db.execute(
            select(CreditTransaction).where(
                CreditTransaction.account_id == account_id,
                CreditTransaction.grant_period == period,
            )
        )
        return result.scalar_one_or_none()

    async def get_recent(
        self, db: AsyncSession, account_id: UUID, *, since: datetime, limit: int
    ) -> list[CreditTransaction]:
        """Transactions created since ``since``, newest first."""
        result = await db.execute(
            select(CreditTransaction)
            .where(
                CreditTransaction.account_id == account_id,
                CreditTransaction.created_at >= since,
            )
            .order_by(desc(CreditTransaction.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def append_entry(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        delta: int,
        reason: str,
        metadata: Optional[dict[str, Any]] = None,
        grant_period: Optional[str] = None,
    ) -> CreditTransaction:
        """Move the balance by ``delta`` and append the explaining transaction.

        Flushes but does not commit, so callers can bundle it with other writes.
        The caller owns the transaction and must roll back on any exception.

        Args:
        ----
            db (AsyncSession): The database session.
            account_id (UUID): The account whose balance changes.
            delta (int): Signed, non-zero change.
            reason (str): Reason code stored on the transaction.
            metadata (dict, optional): Free-form metadata stored on the transaction.
            grant_period (str, optional): Period tag; unique per account.

        Returns:
        -------
            CreditTransaction: The flushed transaction, with ``balance_after`` set.

        Raises:
        ------
            InsufficientCreditsException: If a negative delta would overdraw the account.
            IntegrityError: If ``grant_period`` is already used by this account.

        """
        await self._ensure_balance_row(db, account_id)

        stmt = (
            update(CreditBalance)
            .where(CreditBalance.account_id == account_id)
            .values(balance=CreditBalance.balance + delta, modified_at=utc_now_naive())
            .returning(CreditBalance.balance)
            .execution_options(synchronize_session=False)
        )
        if delta < 0:
            stmt = stmt.where(CreditBalance.balance >= -delta)

        new_balance = (await db.execute(stmt)).scalar_one_or_none()
        if new_balance is None:
            raise InsufficientCreditsException(
                required=-delta, balance=await self.get_credit_balance(db, account_id)
            )

        entry = CreditTransaction(
            account_id=account_id,
            delta=delta,
            reason=reason,
            meta=dict(metadata or {}),
            balance_after=new_balance,
            grant_period=grant_period,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def grant_credits(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: object,
        reason: str = CreditReason.MANUAL_GRANT.value,
        metadata: Optional[dict[str, Any]] = None,
        grant_period: Optional[str] = None,
    ) -> int:
        """Add credits and commit. Returns the new balance.

        Raises:
        ------
            InvalidAmountException: If ``amount`` is not a positive integer.
            DuplicateGrantPeriodException: If ``grant_period`` was already granted.

        """
        amount = validate_amount(amount)
        try:
            entry = await self.append_entry(
                db,
                account_id=account_id,
                delta=amount,
                reason=reason,
                metadata=metadata,
                grant_period=grant_period,
            )
            new_balance = entry.balance_after
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if grant_period is not None and "grant_period" in str(e.orig):
                raise DuplicateGrantPeriodException(account_id, grant_period) from e
            raise
        except Exception:
            await db.rollback()
            raise

        logger.with_context(account_id=str(account_id)).info(
            f"Granted {amount} credits ({reason}), balance now {new_balance}"
        )
        return new_balance

    async def consume_credits(
        self,
        db: AsyncSession,
        *,
        account_id: UUID,
        amount: object,
        reason: str = CreditReason.USAGE_CHARGE.value,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Remove credits and commit, only if the balance covers them.

        Returns the new balance. Nothing is written when the consume is rejected.

        Raises:
        ------
            InvalidAmountException: If ``amount`` is not a positive integer.
            InsufficientCreditsException: If the balance is lower than ``amount``.

        """
        amount = validate_amount(amount)
        try:
            entry = await self.append_entry(
                db, account_id=account_id, delta=-amount, reason=reason, metadata=metadata
            )
            new_balance = entry.balance_after
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.with_context(account_id=str(account_id)).info(
            f"Consumed {amount} credits ({reason}), balance now {new_balance}"
        )
        return new_balance

    async def _ensure_balance_row(self, db: AsyncSession, account_id: UUID) -> None:
        stmt = (
            dialect_insert(db, CreditBalance)
            .values(account_id=account_id, balance=0)
            .on_conflict_do_nothing(index_elements=["account_id"])
        )
        await db.execute(stmt)


credit = CRUDCredit()
