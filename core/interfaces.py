"""
Store and Notifier Interfaces - abstract collaborators of the matching engine.

The engine only talks to persistence through MatchStore and to email
delivery through MatchNotifier, so both can be swapped (SQLAlchemy,
in-memory, SMTP, webhook, mocks in tests).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional


@dataclass
class NotificationResult:
    """Outcome of a best-effort notification."""
    success: bool
    error: Optional[str] = None


@dataclass
class MatchNotice:
    """Everything a notifier needs to tell both sides about a match."""
    match_id: str
    request_id: str
    request_text: str
    score: int
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    requester_faculty: Optional[str] = None
    candidate_faculty: Optional[str] = None
    expires_at: Optional[datetime] = None


class MatchStore(ABC):
    """
    Data store used by the matching engine.

    insert_match must raise DuplicateActiveMatch when the request already
    holds a notified or accepted match; every other failure surfaces as
    StoreError.
    """

    @abstractmethod
    def get_profile(self, profile_id: Any):
        pass

    @abstractmethod
    def list_completed_profiles(self, exclude_ids: Iterable[Any] = ()) -> List[Any]:
        pass

    @abstractmethod
    def get_request(self, request_id: Any):
        pass

    @abstractmethod
    def create_request(self, requester_id: Any, request_text: str, status: str = 'pending',
                       created_at: Optional[datetime] = None):
        pass

    @abstractmethod
    def update_request_status(self, request_id: Any, status: str, updated_at: Optional[datetime] = None):
        pass

    @abstractmethod
    def list_requests(self, statuses: Optional[Iterable[str]] = None, requester_id: Optional[Any] = None) -> List[Any]:
        pass

    @abstractmethod
    def count_requests_for_user(self, requester_id: Any) -> int:
        pass

    @abstractmethod
    def delete_request(self, request_id: Any) -> bool:
        pass

    @abstractmethod
    def insert_match(self, request_id: Any, matched_user_id: Any, match_score: int,
                     expires_at: datetime, created_at: Optional[datetime] = None):
        pass

    @abstractmethod
    def get_match(self, match_id: Any):
        pass

    @abstractmethod
    def update_match_status(self, match_id: Any, status: str, updated_at: Optional[datetime] = None):
        pass

    @abstractmethod
    def list_matches(self, request_id: Optional[Any] = None, statuses: Optional[Iterable[str]] = None,
                     matched_user_id: Optional[Any] = None) -> List[Any]:
        pass

    @abstractmethod
    def get_active_match(self, request_id: Any):
        pass

    @abstractmethod
    def list_recent_matches_for_user(self, user_id: Any, since: datetime) -> List[Any]:
        pass

    @abstractmethod
    def list_overdue_matches(self, now: datetime) -> List[Any]:
        pass


class MatchNotifier(ABC):
    """
    Side-effecting notifier. Both calls are best-effort: implementations
    report failure through NotificationResult rather than raising.
    """

    @abstractmethod
    def send_match_notification(self, notice: MatchNotice) -> NotificationResult:
        """Tell the candidate they have been matched to a request."""
        pass

    @abstractmethod
    def send_connection_email(self, notice: MatchNotice) -> NotificationResult:
        """Introduce requester and candidate once the match is accepted."""
        pass
