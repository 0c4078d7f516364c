"""Usage event model."""

from typing import Optional

from sqlalchemy import JSON, BigInteger, CheckConstraint, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import AccountBase


class UsageEvent(AccountBase):
    """One metered, credit-consuming action."""

    __tablename__ = "usage_event"

    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meta: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    # Balance right after the charge; replays of the same request return it
    balance_after: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        CheckConstraint("cost > 0", name="ck_usage_event_positive_cost"),
        UniqueConstraint("account_id", "request_id", name="uq_usage_event_request"),
        Index("idx_usage_event_account_created", "account_id", "created_at"),
    )
