"""Middleware and exception handlers for the FastAPI application."""

import math
import time
import traceback
import uuid
from typing import Callable, Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from meterly.core.config import Settings, settings
from meterly.core.datetime_utils import to_naive_utc, utc_now_naive
from meterly.core.exceptions import (
    ApiAccessDisabledException,
    DuplicateGrantPeriodException,
    InsufficientCreditsException,
    InvalidInputException,
    MeterlyException,
    NotFoundException,
    PermissionException,
    RateLimitExceededException,
    UnauthenticatedException,
    unpack_validation_error,
)
from meterly.core.logging import logger

REQUEST_ID_HEADER = "X-Request-ID"

# Most specific class wins; lookups walk the exception's MRO.
STATUS_CODE_MAP: dict[type, int] = {
    InvalidInputException: 400,
    UnauthenticatedException: 401,
    InsufficientCreditsException: 402,
    ApiAccessDisabledException: 403,
    PermissionException: 403,
    NotFoundException: 404,
    DuplicateGrantPeriodException: 409,
    RateLimitExceededException: 429,
}


async def add_request_id(request: Request, call_next: Callable) -> Response:
    """Attach a request id for tracing and echo it on the response.

    A well-formed incoming ``X-Request-ID`` is reused, otherwise a uuid4 is generated.
    """
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    request.state.request_id = incoming if 0 < len(incoming) <= 128 else str(uuid.uuid4())
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: Callable) -> Response:
    """Log method, path, status code and duration of every request."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", "")).info(
        f"Handled request {request.method} {request.url.path} in {duration:.3f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


def app_settings_for(request: Request) -> Settings:
    """Settings of the running app; the module settings before services are built."""
    services = getattr(request.app.state, "services", None)
    return services.settings if services is not None else settings


async def exception_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log unhandled exceptions and turn them into a 500 response.

    Args:
    ----
        request (Request): The incoming request.
        call_next (Callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {"detail": "Internal Server Error", "code": "internal_error"}
        if app_settings_for(request).DEBUG:
            response_content["detail"] = f"{exc.__class__.__name__}: {exc}"
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


def status_code_for(exc: MeterlyException) -> int:
    """HTTP status of a typed failure; 500 for anything unmapped."""
    for cls in type(exc).__mro__:
        if cls in STATUS_CODE_MAP:
            return STATUS_CODE_MAP[cls]
    return 500


async def meterly_exception_handler(request: Request, exc: MeterlyException) -> JSONResponse:
    """Translate typed service failures into HTTP responses.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (MeterlyException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: ``{"detail", "code"}`` with the mapped status code. Rate
            limit rejections also carry the ``X-RateLimit-*`` headers.

    """
    status_code = status_code_for(exc)
    headers = None
    if isinstance(exc, RateLimitExceededException):
        headers = exc.decision.headers()
        retry_after = to_naive_utc(exc.decision.reset_at) - utc_now_naive()
        headers["Retry-After"] = str(max(0, math.ceil(retry_after.total_seconds())))
    if status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code},
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for request and schema validation errors.

    Returns:
    -------
        JSONResponse: A 422 response listing ``{"<location>": "<message>"}`` entries.

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)
