"""Subscription model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import AccountBase


class Subscription(AccountBase):
    """Billing state of an account as last reported by the payment processor.

    An account accumulates one row per upstream subscription; the plan service
    picks the effective one.
    """

    __tablename__ = "subscription"

    plan_code: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    current_period_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stripe_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_subscription_account_status", "account_id", "status"),
        Index("idx_subscription_stripe_customer", "stripe_customer_id"),
    )
