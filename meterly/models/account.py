"""Account model."""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from meterly.models._base import Base


class Account(Base):
    """An identity that owns a credit balance, subscriptions and API keys."""

    __tablename__ = "account"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    auth0_id: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
