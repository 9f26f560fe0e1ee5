import logging
from datetime import datetime
from typing import List, Optional, Any, Iterable
from sqlalchemy import select

from core.lifecycle.status import MatchStatus, ACTIVE_MATCH_STATUSES
from database.models import Match
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository):
    def get_match(self, match_id: Any) -> Optional[Match]:
        stmt = select(Match).where(Match.id == match_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def insert_match(
        self,
        request_id: Any,
        matched_user_id: Any,
        match_score: int,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
        status: str = MatchStatus.NOTIFIED
    ) -> Match:
        """Insert a match and flush so the active-match index is checked now."""
        match = Match(
            request_id=request_id,
            matched_user_id=matched_user_id,
            match_score=match_score,
            status=status,
            expires_at=expires_at,
        )
        if created_at is not None:
            match.created_at = created_at
            match.updated_at = created_at
        self.db.add(match)
        self.db.flush()
        return match

    def update_match_status(
        self, match_id: Any, status: str, updated_at: Optional[datetime] = None
    ) -> Optional[Match]:
        match = self.get_match(match_id)
        if match is None:
            return None

        if match.status != status:
            logger.debug(f"Match {match_id}: {match.status} -> {status}")
            match.status = status
            if updated_at is not None:
                match.updated_at = updated_at
            self.db.flush()
        return match

    def list_matches(
        self,
        request_id: Optional[Any] = None,
        statuses: Optional[Iterable[str]] = None,
        matched_user_id: Optional[Any] = None
    ) -> List[Match]:
        stmt = select(Match)

        if request_id is not None:
            stmt = stmt.where(Match.request_id == request_id)
        if statuses is not None:
            stmt = stmt.where(Match.status.in_(list(statuses)))
        if matched_user_id is not None:
            stmt = stmt.where(Match.matched_user_id == matched_user_id)

        stmt = stmt.order_by(Match.created_at, Match.id)
        return list(self.db.execute(stmt).scalars().all())

    def get_active_match(self, request_id: Any) -> Optional[Match]:
        stmt = select(Match).where(
            Match.request_id == request_id,
            Match.status.in_(ACTIVE_MATCH_STATUSES)
        ).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_recent_matches_for_user(self, user_id: Any, since: datetime) -> List[Match]:
        """Matches of any status and any request where user_id was the candidate since `since`."""
        stmt = select(Match).where(
            Match.matched_user_id == user_id,
            Match.created_at >= since
        ).order_by(Match.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def list_overdue_matches(self, now: datetime) -> List[Match]:
        stmt = select(Match).where(
            Match.status == MatchStatus.NOTIFIED,
            Match.expires_at < now
        ).order_by(Match.expires_at)
        return list(self.db.execute(stmt).scalars().all())
