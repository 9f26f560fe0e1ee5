import logging
import uuid
from typing import Any, Optional

from core.exceptions import NotFound

logger = logging.getLogger(__name__)


def parse_id(value: Any) -> Optional[uuid.UUID]:
    """Return value as a UUID, or None when it is not a valid UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def require_id(value: Any, kind: str) -> uuid.UUID:
    """
    Parse an entity id supplied by a caller.

    A malformed id cannot name an existing row, so it is reported as NotFound.
    """
    parsed = parse_id(value)
    if parsed is None:
        raise NotFound(f"{kind} {value} not found")
    return parsed


def same_id(left: Any, right: Any) -> bool:
    """Compare ids that may arrive as UUIDs or strings."""
    if left is None or right is None:
        return False
    return str(left) == str(right)
