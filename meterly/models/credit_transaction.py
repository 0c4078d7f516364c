"""Credit transaction model."""

from typing import Optional

from sqlalchemy import JSON, BigInteger, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import AccountBase


class CreditTransaction(AccountBase):
    """Append-only ledger entry. The balance is the sum of ``delta``."""

    __tablename__ = "credit_transaction"

    delta: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str] = mapped_column(String(64), nullable=False)
    meta: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    # Only set for monthly grants; NULLs never collide in the unique constraint
    grant_period: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)

    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_credit_transaction_nonzero_delta"),
        UniqueConstraint("account_id", "grant_period", name="uq_credit_transaction_grant_period"),
        Index("idx_credit_transaction_account_created", "account_id", "created_at"),
    )
