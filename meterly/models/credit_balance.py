"""Credit balance model."""

from sqlalchemy import BigInteger, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import AccountBase


class CreditBalance(AccountBase):
    """Running balance of one account.

    Written only by the ledger primitives, in the same transaction as the
    credit_transaction row that explains the change, so it always equals the
    sum of that account's deltas. The row doubles as the lock target for
    conditional consumes.
    """

    __tablename__ = "credit_balance"

    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_credit_balance_non_negative"),
        UniqueConstraint("account_id", name="uq_credit_balance_account"),
    )
