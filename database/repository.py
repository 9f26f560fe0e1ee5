import logging
from datetime import datetime
from typing import List, Optional, Any, Iterable

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from core.exceptions import DuplicateActiveMatch, StoreError
from core.interfaces import MatchStore
from database.models import Profile, MatchRequest, Match
from database.repositories import ProfileRepository, RequestRepository, MatchRepository

logger = logging.getLogger(__name__)

ACTIVE_MATCH_INDEX = 'uq_matches_active_request'


def _is_active_match_violation(exc: IntegrityError) -> bool:
    """Whether an IntegrityError came from the one-active-match-per-request index."""
    message = str(getattr(exc, 'orig', exc))
    # PostgreSQL names the index; SQLite names the indexed column
    return ACTIVE_MATCH_INDEX in message or 'matches.request_id' in message


class MatchingRepository(MatchStore):
    """
    SQLAlchemy-backed MatchStore.

    Composes the per-table repositories over one Session. Transaction
    boundaries belong to the caller (see database.uow.matching_uow).
    """

    def __init__(self, db: Session):
        self.db = db
        self.profiles = ProfileRepository(db)
        self.requests = RequestRepository(db)
        self.matches = MatchRepository(db)

    # --- Profiles ---

    def get_profile(self, profile_id: Any) -> Optional[Profile]:
        return self.profiles.get_profile(profile_id)

    def list_completed_profiles(self, exclude_ids: Iterable[Any] = ()) -> List[Profile]:
        return self.profiles.list_completed_profiles(exclude_ids)

    def create_profile(self, **fields) -> Profile:
        return self.profiles.create_profile(**fields)

    # --- Requests ---

    def get_request(self, request_id: Any) -> Optional[MatchRequest]:
        return self.requests.get_request(request_id)

    def create_request(
        self,
        requester_id: Any,
        request_text: str,
        status: str = 'pending',
        created_at: Optional[datetime] = None
    ) -> MatchRequest:
        return self.requests.create_request(requester_id, request_text, status, created_at)

    def update_request_status(
        self, request_id: Any, status: str, updated_at: Optional[datetime] = None
    ) -> Optional[MatchRequest]:
        return self.requests.update_request_status(request_id, status, updated_at)

    def list_requests(
        self,
        statuses: Optional[Iterable[str]] = None,
        requester_id: Optional[Any] = None
    ) -> List[MatchRequest]:
        return self.requests.list_requests(statuses=statuses, requester_id=requester_id)

    def count_requests_for_user(self, requester_id: Any) -> int:
        return self.requests.count_requests_for_user(requester_id)

    def delete_request(self, request_id: Any) -> bool:
        return self.requests.delete_request(request_id)

    # --- Matches ---

    def insert_match(
        self,
        request_id: Any,
        matched_user_id: Any,
        match_score: int,
        expires_at: datetime,
        created_at: Optional[datetime] = None
    ) -> Match:
        try:
            return self.matches.insert_match(
                request_id=request_id,
                matched_user_id=matched_user_id,
                match_score=match_score,
                expires_at=expires_at,
                created_at=created_at,
            )
        except IntegrityError as e:
            self.db.rollback()
            if _is_active_match_violation(e):
                logger.info(f"Active match already exists for request {request_id}")
                raise DuplicateActiveMatch(request_id) from e
            logger.error(f"Integrity error inserting match for request {request_id}: {e}")
            raise StoreError(f"Could not insert match: {e}") from e

    def get_match(self, match_id: Any) -> Optional[Match]:
        return self.matches.get_match(match_id)

    def update_match_status(
        self, match_id: Any, status: str, updated_at: Optional[datetime] = None
    ) -> Optional[Match]:
        return self.matches.update_match_status(match_id, status, updated_at)

    def list_matches(
        self,
        request_id: Optional[Any] = None,
        statuses: Optional[Iterable[str]] = None,
        matched_user_id: Optional[Any] = None
    ) -> List[Match]:
        return self.matches.list_matches(
            request_id=request_id,
            statuses=statuses,
            matched_user_id=matched_user_id
        )

    def get_active_match(self, request_id: Any) -> Optional[Match]:
        return self.matches.get_active_match(request_id)

    def list_recent_matches_for_user(self, user_id: Any, since: datetime) -> List[Match]:
        return self.matches.list_recent_matches_for_user(user_id, since)

    def list_overdue_matches(self, now: datetime) -> List[Match]:
        return self.matches.list_overdue_matches(now)
