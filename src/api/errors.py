"""
Exception handlers - translate domain errors into JSON responses.

The domain raises typed EmailChangeError subclasses; this module maps
each of them to an HTTP status and the standard error envelope. Only
the exception's ``reason`` reaches the client.
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.models import ErrorDetail, ErrorResponse
from src.domain.exceptions import (
    EmailAlreadyInUse,
    EmailChangeError,
    ExpiredEmailChangeRequest,
    SameEmail,
    TooManyEmailChangeRequests,
    TooManyVerificationAttempts,
)
from src.domain.request import utcnow

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
_STATUS_CODES: list[tuple[type[EmailChangeError], int]] = [
    (ExpiredEmailChangeRequest, status.HTTP_410_GONE),
    (TooManyEmailChangeRequests, status.HTTP_429_TOO_MANY_REQUESTS),
    (TooManyVerificationAttempts, status.HTTP_403_FORBIDDEN),
    (SameEmail, status.HTTP_409_CONFLICT),
    (EmailAlreadyInUse, status.HTTP_409_CONFLICT),
]


def status_code_for(exc: EmailChangeError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


async def email_change_error_handler(request: Request, exc: EmailChangeError) -> JSONResponse:
    """Render an EmailChangeError with the standard error envelope."""
    status_code = status_code_for(exc)
    logger.info("Email change rejected: %s (%s)", type(exc).__name__, request.url.path)

    headers = None
    if isinstance(exc, TooManyEmailChangeRequests):
        retry_after = max(0, math.ceil((exc.available_at - utcnow()).total_seconds()))
        headers = {"Retry-After": str(retry_after)}

    body = ErrorResponse(message=exc.reason, error=ErrorDetail(type=type(exc).__name__))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EmailChangeError, email_change_error_handler)
