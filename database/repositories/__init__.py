from database.repositories.base import BaseRepository
from database.repositories.profile import ProfileRepository
from database.repositories.request import RequestRepository
from database.repositories.match import MatchRepository

__all__ = [
    'BaseRepository',
    'ProfileRepository',
    'RequestRepository',
    'MatchRepository',
]
