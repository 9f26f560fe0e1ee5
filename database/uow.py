import contextlib
import logging
from typing import Callable, ContextManager, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.exceptions import StoreError
from database.database import SessionLocal
from database.repository import MatchingRepository

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], ContextManager[MatchingRepository]]


@contextlib.contextmanager
def matching_uow(session_factory: Optional[sessionmaker] = None) -> Iterator[MatchingRepository]:
    """Per-unit-of-work transaction scope.

    Yields a MatchingRepository bound to a fresh Session. Commits on success,
    rolls back on exception, always closes. Driver-level failures are
    re-raised as StoreError; matching errors pass through untouched.

    Usage:
        with matching_uow(factory) as store:
            match = store.get_match(match_id)
            # perform operations...
        # commit happens automatically on successful exit
    """
    session = (session_factory or SessionLocal)()
    try:
        store = MatchingRepository(session)
        yield store
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store failure, transaction rolled back: {e}")
        raise StoreError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def uow_factory(session_factory: Optional[sessionmaker] = None) -> UnitOfWorkFactory:
    """Bind matching_uow to a session factory for injection into services."""
    def _factory():
        return matching_uow(session_factory)
    return _factory
