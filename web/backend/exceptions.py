#!/usr/bin/env python3
"""
Error handlers for the web application.

Matching errors raised by the service layer are translated into HTTP
status codes with a consistent JSON envelope.
"""

import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

from core.exceptions import (
    MatchingError,
    NotFound,
    Forbidden,
    Expired,
    AlreadyResolved,
    ActiveMatchExists,
    RequestLimitExceeded,
    StoreError,
)

logger = logging.getLogger(__name__)

# Checked in order; first match wins
STATUS_BY_ERROR = (
    (NotFound, 404),
    (Forbidden, 403),
    (Expired, 410),
    (AlreadyResolved, 409),
    (ActiveMatchExists, 409),
    (RequestLimitExceeded, 429),
    (StoreError, 503),
)


def status_for(exc: MatchingError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _envelope(status_code: int, error: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "type": error_type
        }
    )


async def matching_exception_handler(
    request: Request,
    exc: MatchingError
) -> JSONResponse:
    """
    Handle matching engine exceptions.

    Args:
        request: The FastAPI request.
        exc: The matching error.

    Returns:
        JSONResponse with error details.
    """
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"Service error in {request.url.path}: {exc}", exc_info=True)
    else:
        logger.info(f"{exc.__class__.__name__} in {request.url.path}: {exc}")

    error = "Data store unavailable" if isinstance(exc, StoreError) else str(exc)
    return _envelope(status_code, error, exc.__class__.__name__)


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return _envelope(400, str(exc), "ValidationError")


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions with consistent format."""
    return _envelope(exc.status_code, exc.detail, "HTTPException")


async def general_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error in {request.url.path}")
    return _envelope(500, "Internal server error", "InternalError")
