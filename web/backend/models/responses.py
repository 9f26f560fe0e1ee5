#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from core.lifecycle.dto import MatchDTO, ReconcileResult
from core.rematch.dto import RetryResult, SubmitResult, SweepResult


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _str(value) -> Optional[str]:
    return str(value) if value is not None else None


class SubmitResponse(BaseModel):
    """Outcome of submitting a request."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "request_id": "550e8400-e29b-41d4-a716-446655440000",
                "status": "matched",
                "match_id": "6ba7b810-9dad-11d1-80b4-00c04fd430c8",
                "score": 45
            }
        }
    )

    success: bool = True
    request_id: str
    status: str
    match_id: Optional[str] = None
    score: Optional[int] = Field(None, ge=0)

    @classmethod
    def from_result(cls, result: SubmitResult) -> "SubmitResponse":
        return cls(
            request_id=str(result.request_id),
            status=result.status,
            match_id=_str(result.match_id),
            score=result.score,
        )


class RetryResponse(BaseModel):
    success: bool = True
    request_id: str
    created: bool
    match_id: Optional[str] = None
    score: Optional[int] = Field(None, ge=0)
    reason: Optional[str] = None

    @classmethod
    def from_result(cls, result: RetryResult) -> "RetryResponse":
        return cls(
            request_id=str(result.request_id),
            created=result.created,
            match_id=_str(result.match_id),
            score=result.score,
            reason=result.reason,
        )


class SweepResponse(BaseModel):
    success: bool = True
    total: int
    successful: int
    failed: int
    results: List[RetryResponse] = []

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls(
            total=result.total,
            successful=result.successful,
            failed=result.failed,
            results=[RetryResponse.from_result(r) for r in result.results],
        )


class MatchResponse(BaseModel):
    """A match with lazy expiry applied."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "match_id": "6ba7b810-9dad-11d1-80b4-00c04fd430c8",
                "request_id": "550e8400-e29b-41d4-a716-446655440000",
                "matched_user_id": "9b2f3c1e-4d5a-4e6f-8a7b-0c1d2e3f4a5b",
                "score": 45,
                "status": "notified",
                "request_status": "matched",
                "created_at": "2026-02-01T12:00:00+00:00",
                "expires_at": "2026-02-08T12:00:00+00:00",
                "updated_at": "2026-02-01T12:00:00+00:00"
            }
        }
    )

    success: bool = True
    match_id: str
    request_id: str
    matched_user_id: str
    score: int = Field(ge=0)
    status: str
    request_status: Optional[str] = None
    created_at: Optional[str] = None
    expires_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dto(cls, match: MatchDTO) -> "MatchResponse":
        return cls(
            match_id=str(match.id),
            request_id=str(match.request_id),
            matched_user_id=str(match.matched_user_id),
            score=match.score,
            status=match.status,
            request_status=match.request_status,
            created_at=_iso(match.created_at),
            expires_at=_iso(match.expires_at),
            updated_at=_iso(match.updated_at),
        )


class ReconcileResponse(BaseModel):
    success: bool = True
    request_id: str
    previous_status: str
    status: str
    changed: bool

    @classmethod
    def from_result(cls, result: ReconcileResult) -> "ReconcileResponse":
        return cls(
            request_id=str(result.request_id),
            previous_status=result.previous_status,
            status=result.status,
            changed=result.changed,
        )


class BulkReconcileResponse(BaseModel):
    success: bool = True
    fixed: int
    message: str


class ExpireResponse(BaseModel):
    success: bool = True
    expired: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
