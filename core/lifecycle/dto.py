"""Data Transfer Objects for the match lifecycle.

Copied out of ORM rows while the Unit of Work is open so callers can use
them after the session is closed.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass
class MatchDTO:
    id: Any
    request_id: Any
    matched_user_id: Any
    score: int
    status: str
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    request_status: Optional[str] = None

    @classmethod
    def from_model(cls, match: Any, request_status: Optional[str] = None) -> "MatchDTO":
        return cls(
            id=match.id,
            request_id=match.request_id,
            matched_user_id=match.matched_user_id,
            score=match.match_score,
            status=match.status,
            created_at=match.created_at,
            expires_at=match.expires_at,
            updated_at=match.updated_at,
            request_status=request_status,
        )


@dataclass
class ReconcileResult:
    request_id: Any
    previous_status: str
    status: str

    @property
    def changed(self) -> bool:
        return self.previous_status != self.status
