import logging
from typing import Any, Iterable, List, Optional
from sqlalchemy import select

from database.models import Profile
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository):
    def get_profile(self, profile_id: Any) -> Optional[Profile]:
        stmt = select(Profile).where(Profile.id == profile_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_completed_profiles(self, exclude_ids: Iterable[Any] = ()) -> List[Profile]:
        """Completed profiles minus the excluded ids, in stable id order."""
        excluded = [pid for pid in exclude_ids if pid is not None]

        stmt = select(Profile).where(Profile.profile_completed.is_(True))
        if excluded:
            stmt = stmt.where(Profile.id.not_in(excluded))

        stmt = stmt.order_by(Profile.id)
        return list(self.db.execute(stmt).scalars().all())

    def create_profile(self, **fields) -> Profile:
        profile = Profile(**fields)
        self.db.add(profile)
        self.db.flush()  # Generate ID
        return profile
