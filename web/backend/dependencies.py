#!/usr/bin/env python3
"""
FastAPI dependencies for dependency injection.
"""

import uuid
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from core.app_context import AppContext
from core.matching_service import MatchingService
from .config import get_config


@lru_cache()
def get_context() -> AppContext:
    """Application context shared by every request (built once)."""
    return AppContext.build(get_config())


def get_matching_service(context: AppContext = Depends(get_context)) -> MatchingService:
    """
    FastAPI dependency that yields the matching service.

    Usage:
        @router.post("/endpoint")
        def my_endpoint(service: MatchingService = Depends(get_matching_service)):
            ...
    """
    return context.service


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Acting user, supplied by the authenticating proxy in X-User-Id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    return x_user_id


def require_admin(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
) -> str:
    if not service.is_admin(user_id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id


def validate_uuid(value: str, name: str = "id") -> str:
    """Validate that a path parameter is a valid UUID format."""
    try:
        uuid.UUID(value)
        return value
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {name} format: {value}. Must be a valid UUID."
        )
