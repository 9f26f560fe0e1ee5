import uuid

from sqlalchemy import Column, Text, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utc_now


class MatchRequest(Base):
    """
    A user's curiosity/question text waiting for a match.

    status is one of pending, matched, confirmed, no_match_found and is only
    written by the matching engine. It must stay reconcilable from the
    request's matches.
    """
    __tablename__ = 'requests'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    requester_id = Column(Uuid(as_uuid=True), ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    request_text = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default='pending')

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    requester = relationship("Profile", back_populates="requests")
    matches = relationship("Match", back_populates="request", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index('idx_requests_requester', 'requester_id'),
        Index('idx_requests_status', 'status'),
        Index('idx_requests_created', 'created_at'),
    )
