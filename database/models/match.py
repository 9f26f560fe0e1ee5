import uuid

from sqlalchemy import Column, Text, Integer, ForeignKey, Index, CheckConstraint, Uuid
from sqlalchemy.sql import text as sql_text
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utc_now

ACTIVE_STATUS_SQL = "status IN ('notified', 'accepted')"


class Match(Base):
    """
    Proposed pairing between a request and a candidate profile.

    Lifecycle: notified -> accepted | declined | expired.

    The partial unique index allows at most one notified/accepted row per
    request; concurrent inserts beyond the first fail with an
    IntegrityError which the repository reports as DuplicateActiveMatch.
    """
    __tablename__ = 'matches'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(Uuid(as_uuid=True), ForeignKey('requests.id', ondelete='CASCADE'), nullable=False)
    matched_user_id = Column(Uuid(as_uuid=True), ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    match_score = Column(Integer, nullable=False, default=0)
    status = Column(Text, nullable=False, default='notified')

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    expires_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    request = relationship("MatchRequest", back_populates="matches")
    matched_user = relationship("Profile")

    __table_args__ = (
        Index(
            'uq_matches_active_request',
            'request_id',
            unique=True,
            postgresql_where=sql_text(ACTIVE_STATUS_SQL),
            sqlite_where=sql_text(ACTIVE_STATUS_SQL),
        ),
        CheckConstraint('match_score >= 0', name='ck_matches_score_non_negative'),
        Index('idx_matches_request', 'request_id'),
        Index('idx_matches_user_created', 'matched_user_id', 'created_at'),
        Index('idx_matches_status', 'status'),
    )
