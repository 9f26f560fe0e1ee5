#!/usr/bin/env python3
"""
Admin endpoints - system-wide sweeps.
"""

import logging
from fastapi import APIRouter, Depends

from core.matching_service import MatchingService
from ..dependencies import get_matching_service, require_admin
from ..models.responses import SweepResponse, ExpireResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/retry-all", response_model=SweepResponse)
def retry_all_unmatched(
    admin_id: str = Depends(require_admin),
    service: MatchingService = Depends(get_matching_service)
):
    """Expire overdue matches, then retry every request without an active match."""
    logger.info(f"Admin {admin_id} triggered retry of all unmatched requests")
    return SweepResponse.from_result(service.retry_all_unmatched())


@router.post("/expire", response_model=ExpireResponse)
def expire_overdue_matches(
    admin_id: str = Depends(require_admin),
    service: MatchingService = Depends(get_matching_service)
):
    return ExpireResponse(expired=service.expire_overdue_matches())
