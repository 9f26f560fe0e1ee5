from sqlalchemy.orm import Session


class BaseRepository:
    """Table repository over a Session owned by the unit of work."""

    def __init__(self, db: Session):
        self.db = db
