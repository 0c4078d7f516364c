"""Rate limit counter model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import AccountBase


class RateLimitCounter(AccountBase):
    """Hit count of one account and scope inside one fixed window."""

    __tablename__ = "rate_limit_counter"

    scope: Mapped[str] = mapped_column(String(100), nullable=False)
    window_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("account_id", "scope", "window_start", name="uq_rate_limit_window"),
    )
