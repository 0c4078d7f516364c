"""Account schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr

from meterly.schemas._base import APIModel


class AccountCreate(APIModel):
    """Schema for creating an account."""

    email: EmailStr
    display_name: Optional[str] = None
    auth0_id: Optional[str] = None


class Account(APIModel):
    """Account as exposed to callers."""

    id: UUID
    email: str
    display_name: Optional[str] = None
    created_at: datetime
