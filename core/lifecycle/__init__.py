from core.lifecycle.status import (
    MatchStatus,
    RequestStatus,
    ACTIVE_MATCH_STATUSES,
    RETRYABLE_REQUEST_STATUSES,
    is_overdue,
    effective_match_status,
    derive_request_status,
)
from core.lifecycle.dto import MatchDTO, ReconcileResult
from core.lifecycle.manager import MatchLifecycleManager, ACCEPT, DECLINE

__all__ = [
    'MatchStatus',
    'RequestStatus',
    'ACTIVE_MATCH_STATUSES',
    'RETRYABLE_REQUEST_STATUSES',
    'is_overdue',
    'effective_match_status',
    'derive_request_status',
    'MatchDTO',
    'ReconcileResult',
    'MatchLifecycleManager',
    'ACCEPT',
    'DECLINE',
]
