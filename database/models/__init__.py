from .base import Base, UTCDateTime, utc_now
from .profile import Profile
from .request import MatchRequest
from .match import Match, ACTIVE_STATUS_SQL

__all__ = [
    'Base',
    'UTCDateTime',
    'utc_now',
    'Profile',
    'MatchRequest',
    'Match',
    'ACTIVE_STATUS_SQL',
]
