#!/usr/bin/env python3
"""
Per-user rate limiting for the matching endpoints.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from .config import get_config


def user_or_address(request: Request) -> str:
    """Key requests by acting user, falling back to the client address."""
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


def match_request_limit() -> str:
    return f"{get_config().web.rate_limit.match_requests_per_hour}/hour"


def retry_limit() -> str:
    return f"{get_config().web.rate_limit.retries_per_hour}/hour"


limiter = Limiter(key_func=user_or_address)


def add_rate_limit_handlers(app):
    """Add rate limit exception handlers to the FastAPI app."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": f"Rate limit exceeded: {exc.detail}",
            "type": "RateLimitExceeded"
        }
    )
