#!/usr/bin/env python3
"""
Match endpoints - view and respond to matches.
"""

import logging
from fastapi import APIRouter, Depends

from core.matching_service import MatchingService
from ..dependencies import get_current_user_id, get_matching_service, validate_uuid
from ..models.requests import RespondToMatchRequest
from ..models.responses import MatchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("/{match_id}", response_model=MatchResponse)
def get_match(
    match_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """
    Get a match visible to the caller (matched user or requester).

    A notified match past its expiry is reported, and stored, as expired.
    """
    validate_uuid(match_id, "match_id")
    return MatchResponse.from_dto(service.get_match(match_id, user_id))


@router.post("/{match_id}/respond", response_model=MatchResponse)
def respond_to_match(
    match_id: str,
    payload: RespondToMatchRequest,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """
    Accept or decline a match as the matched user.

    Errors: 403 not your match, 410 expired, 409 already answered.
    """
    validate_uuid(match_id, "match_id")
    match = service.respond_to_match(match_id, user_id, payload.action)
    return MatchResponse.from_dto(match)
