"""Billing event model for audit trail."""

from typing import Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import Base


class BillingEvent(Base):
    """Audit log for webhook deliveries and grant runs."""

    __tablename__ = "billing_event"

    account_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("account.id", ondelete="CASCADE"), nullable=True
    )

    event_type: Mapped[str] = mapped_column(
        String(100), nullable=False
    )  # customer.subscription.updated, monthly_grant_run, etc.

    stripe_event_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    event_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_billing_event_account", "account_id"),
        Index("idx_billing_event_type", "event_type"),
    )
