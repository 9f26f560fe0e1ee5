"""
Matching error taxonomy.

Validation errors (NotFound, Forbidden, Expired, AlreadyResolved) are raised
to the immediate caller. DuplicateActiveMatch is converted to an
"already in progress" result by the orchestrator. StoreError wraps any
persistence failure.
"""

from typing import Any, Optional


class MatchingError(Exception):
    """Base exception for matching engine errors."""
    pass


class NotFound(MatchingError):
    """Raised when a profile, request or match does not exist."""
    pass


class Forbidden(MatchingError):
    """Raised when the acting user may not touch this match or request."""
    pass


class Expired(MatchingError):
    """Raised when a match is past its expiry."""
    pass


class AlreadyResolved(MatchingError):
    """Raised when a transition targets a match that is no longer notified."""

    def __init__(self, match_id: Any, status: str):
        super().__init__(f"Match {match_id} has already been {status}")
        self.match_id = match_id
        self.status = status


class DuplicateActiveMatch(MatchingError):
    """Raised when a request already holds a notified or accepted match."""

    def __init__(self, request_id: Any, existing_match_id: Optional[Any] = None):
        super().__init__(f"Request {request_id} already has an active match")
        self.request_id = request_id
        self.existing_match_id = existing_match_id


class SelfMatch(MatchingError):
    """Raised when a candidate is the requester."""
    pass


class StoreError(MatchingError):
    """Raised when the data store fails (connectivity, unexpected constraint, ...)."""
    pass


class RequestLimitExceeded(MatchingError):
    """Raised when a user already holds the maximum number of requests."""
    pass


class ActiveMatchExists(MatchingError):
    """Raised when deleting a request that still has an active match."""
    pass
