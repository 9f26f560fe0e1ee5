import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional
from sqlalchemy import delete, select, func

from database.models import Match, MatchRequest
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class RequestRepository(BaseRepository):
    def get_request(self, request_id: Any) -> Optional[MatchRequest]:
        stmt = select(MatchRequest).where(MatchRequest.id == request_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_request(
        self,
        requester_id: Any,
        request_text: str,
        status: str = 'pending',
        created_at: Optional[datetime] = None
    ) -> MatchRequest:
        match_request = MatchRequest(
            requester_id=requester_id,
            request_text=request_text,
            status=status,
        )
        if created_at is not None:
            match_request.created_at = created_at
            match_request.updated_at = created_at
        self.db.add(match_request)
        self.db.flush()  # Generate ID
        return match_request

    def update_request_status(
        self, request_id: Any, status: str, updated_at: Optional[datetime] = None
    ) -> Optional[MatchRequest]:
        match_request = self.get_request(request_id)
        if match_request is None:
            return None

        if match_request.status != status:
            logger.debug(f"Request {request_id}: {match_request.status} -> {status}")
            match_request.status = status
            if updated_at is not None:
                match_request.updated_at = updated_at
            self.db.flush()
        return match_request

    def list_requests(
        self,
        statuses: Optional[Iterable[str]] = None,
        requester_id: Optional[Any] = None
    ) -> List[MatchRequest]:
        stmt = select(MatchRequest)

        if statuses is not None:
            stmt = stmt.where(MatchRequest.status.in_(list(statuses)))
        if requester_id is not None:
            stmt = stmt.where(MatchRequest.requester_id == requester_id)

        stmt = stmt.order_by(MatchRequest.created_at.desc(), MatchRequest.id)
        return list(self.db.execute(stmt).scalars().all())

    def count_requests_for_user(self, requester_id: Any) -> int:
        stmt = select(func.count(MatchRequest.id)).where(MatchRequest.requester_id == requester_id)
        return self.db.execute(stmt).scalar_one()

    def delete_request(self, request_id: Any) -> bool:
        match_request = self.get_request(request_id)
        if match_request is None:
            return False
        # SQLite does not enforce ON DELETE CASCADE by default
        self.db.execute(delete(Match).where(Match.request_id == request_id))
        self.db.delete(match_request)
        self.db.flush()
        return True
