"""Shared exceptions module."""

from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

if TYPE_CHECKING:
    from meterly.schemas.rate_limit import RateLimitDecision


class MeterlyException(Exception):
    """Base exception for Meterly services.

    ``code`` is the stable machine-readable identifier returned to HTTP callers.
    """

    code: str = "internal_error"

    def __init__(self, message: Optional[str] = None):
        """Create a new MeterlyException instance.

        Args:
        ----
            message (str, optional): The error message.

        """
        self.message = message or self.__class__.__doc__
        super().__init__(self.message)


class InvalidInputException(MeterlyException):
    """Request input failed validation."""

    code = "invalid_input"


class InvalidAmountException(InvalidInputException):
    """Exception raised when a credit amount is not a finite positive integer."""

    code = "invalid_amount"

    def __init__(self, amount: object = None, message: Optional[str] = None):
        """Create a new InvalidAmountException instance.

        Args:
        ----
            amount (object, optional): The rejected amount.
            message (str, optional): Custom error message. If not provided, generates one.

        """
        self.amount = amount
        super().__init__(message or f"Amount must be a positive integer, got {amount!r}")


class InsufficientCreditsException(MeterlyException):
    """Exception raised when a consume would take the balance below zero."""

    code = "insufficient_credits"

    def __init__(
        self,
        required: Optional[int] = None,
        balance: Optional[int] = None,
        message: Optional[str] = None,
    ):
        """Create a new InsufficientCreditsException instance.

        Args:
        ----
            required (int, optional): Credits the operation needed.
            balance (int, optional): Balance observed when the consume was rejected.
            message (str, optional): Custom error message. If not provided, generates one.

        """
        if message is None:
            message = "Insufficient credits"
            if required is not None and balance is not None:
                message += f": required {required}, available {balance}"
        self.required = required
        self.balance = balance
        super().__init__(message)


class UnauthenticatedException(MeterlyException):
    """No valid principal is attached to the request."""

    code = "unauthenticated"


class InvalidApiKeyException(UnauthenticatedException):
    """The presented API key is missing, malformed, revoked or unknown."""

    code = "invalid_api_key"


class ApiAccessDisabledException(MeterlyException):
    """Exception raised when the account's plan lacks a required feature."""

    code = "api_access_disabled"

    def __init__(self, feature: str = "api_access", plan_code: Optional[str] = None):
        """Create a new ApiAccessDisabledException instance.

        Args:
        ----
            feature (str): The feature key that is disabled.
            plan_code (str, optional): The plan the account resolved to.

        """
        self.feature = feature
        self.plan_code = plan_code
        message = f"Feature '{feature}' is not enabled"
        if plan_code:
            message += f" for plan '{plan_code}'"
        super().__init__(message)


class RateLimitExceededException(MeterlyException):
    """Exception raised when a request exceeds its rate-limit window."""

    code = "rate_limited"

    def __init__(self, decision: "RateLimitDecision"):
        """Create a new RateLimitExceededException instance.

        Args:
        ----
            decision (RateLimitDecision): The rejected admission decision.

        """
        self.decision = decision
        super().__init__(
            f"Rate limit exceeded for scope '{decision.scope}': "
            f"{decision.hits}/{decision.limit} in current window"
        )


class PermissionException(MeterlyException):
    """Caller is not allowed to perform this action."""

    code = "forbidden"


class NotFoundException(MeterlyException):
    """Object not found."""

    code = "not_found"


class DuplicateGrantPeriodException(MeterlyException):
    """A monthly grant for this account and period already exists."""

    code = "already_granted"

    def __init__(self, account_id: object, period: str):
        """Create a new DuplicateGrantPeriodException instance.

        Args:
        ----
            account_id: The account that already holds the grant.
            period (str): The grant period, formatted YYYY-MM.

        """
        self.account_id = account_id
        self.period = period
        super().__init__(f"Monthly grant for {period} already issued to account {account_id}")


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_messages.append({field: error["msg"]})

    return {"errors": error_messages}
