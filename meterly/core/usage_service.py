"""Usage service: idempotent charging for metered actions."""

import uuid
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from meterly import crud, schemas
from meterly.core.amounts import MAX_AMOUNT, validate_amount
from meterly.core.datetime_utils import utc_now_naive
from meterly.core.exceptions import InvalidInputException
from meterly.core.logging import ContextualLogger
from meterly.core.logging import logger as default_logger
from meterly.db.session import SessionFactory, get_db_context

HISTORY_DAYS_RANGE = (7, 365)
HISTORY_LIMIT_RANGE = (10, 200)


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


class UsageService:
    """Records usage events and charges the ledger exactly once per request id."""

    def __init__(self, session_factory: SessionFactory, logger: Optional[ContextualLogger] = None):
        """Initialize the usage service.

        Args:
            session_factory: Factory for database sessions.
            logger: Optional contextual logger.
        """
        self._session_factory = session_factory
        self.logger = logger or default_logger.with_context(component="usage")

    @staticmethod
    def new_request_id() -> str:
        """A fresh idempotency key for callers that did not supply one."""
        return str(uuid.uuid4())

    async def record_usage_event(
        self,
        account_id: UUID,
        event_type: Any,
        cost: Any,
        tokens: Optional[int] = None,
        request_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> schemas.UsageResult:
        """Charge ``cost`` credits for one action and record it.

        With a ``request_id``, repeated calls charge once and return the first
        result with ``was_duplicate=True``.

        Args:
            account_id: The account to charge.
            event_type: Opaque, non-empty action type.
            cost: Positive integer credit cost.
            tokens: Optional non-negative token count.
            request_id: Optional idempotency key.
            metadata: Optional free-form metadata.

        Returns:
            schemas.UsageResult: Event id, new balance and the duplicate flag.

        Raises:
            InvalidInputException: If ``event_type``, ``tokens`` or ``request_id`` is malformed.
            InvalidAmountException: If ``cost`` is not a positive integer.
            InsufficientCreditsException: If the balance does not cover ``cost``.
        """
        if not isinstance(event_type, str) or not event_type.strip():
            raise InvalidInputException("event_type is required")
        cost = validate_amount(cost)
        valid_tokens = isinstance(tokens, int) and not isinstance(tokens, bool)
        if tokens is not None and not (valid_tokens and 0 <= tokens <= MAX_AMOUNT):
            raise InvalidInputException(f"tokens must be an integer between 0 and {MAX_AMOUNT}")
        if request_id is not None:
            request_id = str(request_id).strip() or None
            if request_id and len(request_id) > 255:
                raise InvalidInputException("request_id must be at most 255 characters")

        async with get_db_context(self._session_factory) as db:
            result = await crud.usage_event.record_usage_event(
                db,
                account_id=account_id,
                event_type=event_type.strip(),
                cost=cost,
                tokens=tokens,
                request_id=request_id,
                metadata=metadata,
            )

        if result.was_duplicate:
            self.logger.with_context(account_id=str(account_id), request_id=request_id).info(
                f"Replayed usage event {result.event_id} for duplicate request"
            )
        return result

    async def get_history(
        self, account_id: UUID, days: int = 30, limit: int = 50
    ) -> schemas.CreditHistory:
        """Recent ledger entries and usage events. ``days`` and ``limit`` are clamped."""
        days = _clamp(days, HISTORY_DAYS_RANGE)
        limit = _clamp(limit, HISTORY_LIMIT_RANGE)
        since = utc_now_naive() - timedelta(days=days)
        async with get_db_context(self._session_factory) as db:
            credits = await crud.credit.get_recent(db, account_id, since=since, limit=limit)
            usage = await crud.usage_event.get_recent(db, account_id, since=since, limit=limit)
        return schemas.CreditHistory(
            days=days,
            credits=[schemas.CreditTransaction.model_validate(c) for c in credits],
            usage=[schemas.UsageEvent.model_validate(u) for u in usage],
        )
