#!/usr/bin/env python3
"""
Request endpoints - submit, retry, reconcile and delete match requests.
"""

import logging
from fastapi import APIRouter, Depends, Request

from core.matching_service import MatchingService
from ..dependencies import get_current_user_id, get_matching_service, validate_uuid
from ..rate_limit import limiter, match_request_limit, retry_limit
from ..models.requests import SubmitMatchRequest
from ..models.responses import (
    SubmitResponse,
    RetryResponse,
    ReconcileResponse,
    BulkReconcileResponse,
    MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.post("", response_model=SubmitResponse)
@limiter.limit(match_request_limit)
def submit_request(
    request: Request,
    payload: SubmitMatchRequest,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """
    Submit a question and try to match it right away.

    status is "matched" when a candidate was notified and "no_match_found"
    when nobody in the pool clears the score threshold.
    """
    result = service.submit_request_and_match(user_id, payload.text)
    return SubmitResponse.from_result(result)


@router.post("/reconcile", response_model=BulkReconcileResponse)
def reconcile_my_requests(
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Recompute the status of every request of the caller from its matches."""
    fixed = service.reconcile_user_requests(user_id)
    return BulkReconcileResponse(
        fixed=fixed,
        message=f"Fixed {fixed} request statuses"
    )


@router.post("/{request_id}/retry", response_model=RetryResponse)
@limiter.limit(retry_limit)
def retry_request(
    request: Request,
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """
    Look for a new match for one of the caller's requests.

    created is false with a reason when nobody new is eligible or the
    request already has an active match.
    """
    validate_uuid(request_id, "request_id")
    result = service.retry_matching_for_request(request_id, acting_user_id=user_id)
    return RetryResponse.from_result(result)


@router.post("/{request_id}/reconcile", response_model=ReconcileResponse)
def reconcile_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    validate_uuid(request_id, "request_id")
    result = service.reconcile_status(request_id, acting_user_id=user_id)
    return ReconcileResponse.from_result(result)


@router.delete("/{request_id}", response_model=MessageResponse)
def delete_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MatchingService = Depends(get_matching_service)
):
    """Delete a request without an active match, together with its past matches."""
    validate_uuid(request_id, "request_id")
    service.delete_request(request_id, user_id)
    return MessageResponse(message=f"Request {request_id} deleted")
