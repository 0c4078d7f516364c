"""Schemas for key-authenticated external routes."""

from typing import Optional
from uuid import UUID

from pydantic import Field

from meterly.schemas._base import APIModel


class TextGenerateRequest(APIModel):
    """Request to generate text."""

    prompt: str = Field(min_length=1)
    request_id: Optional[str] = None


class ImageGenerateRequest(APIModel):
    """Request to generate an image."""

    prompt: str = Field(min_length=1)
    width: int = Field(default=1024, gt=0, le=4096)
    height: int = Field(default=1024, gt=0, le=4096)
    request_id: Optional[str] = None


class GenerateAccepted(APIModel):
    """A charged generation request, ready to be handed to the generation backend."""

    event_id: UUID
    request_id: str
    event_type: str
    cost: int
    tokens: int
    new_balance: int
    was_duplicate: bool
    watermark: bool
    plan_code: str


class Ping(APIModel):
    """Key check response."""

    ok: bool = True
    account_id: UUID
    plan_code: str
