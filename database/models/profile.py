import uuid

from sqlalchemy import Column, Text, Boolean, JSON, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utc_now


class Profile(Base):
    """
    Student profile used as a matching candidate.

    Owned by the profile screens; the matching engine only reads it.
    Tags are stored lowercased and stripped.
    """
    __tablename__ = 'profiles'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=True)
    full_name = Column(Text, nullable=True)

    faculty = Column(Text, nullable=True)
    program = Column(Text, nullable=True)
    knowledge_tags = Column(JSON, nullable=False, default=list)
    curiosity_tags = Column(JSON, nullable=False, default=list)

    profile_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    requests = relationship("MatchRequest", back_populates="requester", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_profiles_completed', 'profile_completed'),
    )
