#!/usr/bin/env python3
"""
Scoring Models - Data structures for scoring results.
"""

from typing import List, Dict, Any
from dataclasses import dataclass, field


@dataclass
class ScoreBreakdown:
    """Keyword score with the rules that produced it."""
    score: int = 0
    raw_score: int = 0  # before clamping at zero
    components: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def clamped(self) -> bool:
        return self.raw_score < 0
