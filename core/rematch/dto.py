"""Result objects returned by the rematch orchestrator."""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class RetryResult:
    request_id: Any
    created: bool
    match_id: Optional[Any] = None
    score: Optional[int] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'request_id': str(self.request_id),
            'created': self.created,
            'match_id': str(self.match_id) if self.match_id is not None else None,
            'score': self.score,
            'reason': self.reason,
        }


@dataclass
class SweepResult:
    total: int = 0
    successful: int = 0
    failed: int = 0
    results: List[RetryResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'successful': self.successful,
            'failed': self.failed,
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class SubmitResult:
    request_id: Any
    status: str
    match_id: Optional[Any] = None
    score: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            'request_id': str(self.request_id),
            'status': self.status,
            'match_id': str(self.match_id) if self.match_id is not None else None,
            'score': self.score,
        }
