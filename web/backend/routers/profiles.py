#!/usr/bin/env python3
"""
Profile hooks - called by the profile service after signup or an edit.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException

from core.matching_service import MatchingService
from core.utils import same_id
from ..dependencies import get_current_user_id, get_matching_service, validate_uuid
from ..models.responses import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.post("/{profile_id}/updated", response_model=MessageResponse)
def profile_updated(
    profile_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Schedule a background sweep: the new or changed profile may fit unmatched requests."""
    validate_uuid(profile_id, "profile_id")
    if not same_id(profile_id, user_id) and not service.is_admin(user_id):
        raise HTTPException(status_code=403, detail="You can only report updates to your own profile")

    service.on_profile_updated(profile_id)
    return MessageResponse(message="Rematch of unmatched requests scheduled")
