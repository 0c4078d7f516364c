"""Base models for the application."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr

from meterly.core.datetime_utils import utc_now_naive


class Base(DeclarativeBase):
    """Base class for all models."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    created_at = Column(DateTime, default=utc_now_naive, nullable=False)
    modified_at = Column(DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False)


class AccountBase(Base):
    """Base class for tables owned by a single account."""

    __abstract__ = True

    @declared_attr
    def account_id(cls):
        """Account ID column."""
        return Column(Uuid, ForeignKey("account.id", ondelete="CASCADE"), nullable=False)
