"""Data Transfer Objects for candidate selection.

Selection runs inside a Unit of Work; the chosen candidate is copied into a
plain object so it can be handed to the lifecycle manager after the
session is closed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScoredCandidate:
    """A completed profile with its keyword score for one request."""
    profile_id: Any
    score: int
    faculty: Optional[str] = None
    program: Optional[str] = None
    components: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def id(self) -> Any:
        return self.profile_id
