#!/usr/bin/env python3
"""
Keyword Scoring - compatibility of a free-text request with a candidate profile.

Rules (weights from ScoringWeights):
- Each knowledge tag found in the request text: + knowledge_tag
- Each curiosity tag found in the request text: + curiosity_tag
- Candidate faculty differs from the requester's: + faculty_bonus
- Candidate program equals the requester's: - same_program_penalty

Tag hits are case-insensitive substring matches. The total is clamped at 0.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from core.config_loader import ScoringWeights
from core.scorer.models import ScoreBreakdown

logger = logging.getLogger(__name__)


def normalize_tag(tag: Any) -> str:
    return str(tag).strip().lower() if tag is not None else ""


def normalize_tags(tags: Optional[Iterable[Any]]) -> List[str]:
    """Lowercase, strip and de-duplicate tags, keeping first-seen order."""
    seen = []
    for tag in tags or []:
        normalized = normalize_tag(tag)
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen


def _tag_hits(request_text: str, tags: Optional[Iterable[Any]]) -> List[str]:
    return [tag for tag in normalize_tags(tags) if tag in request_text]


def score_breakdown(
    request_text: str,
    requester_faculty: Optional[str],
    requester_program: Optional[str],
    candidate: Any,
    weights: Optional[ScoringWeights] = None
) -> ScoreBreakdown:
    """
    Score one candidate against a request, keeping per-rule details.

    Args:
        request_text: Free-form request text
        requester_faculty: Faculty of the person asking
        requester_program: Program of the person asking
        candidate: Object with faculty, program, knowledge_tags, curiosity_tags
        weights: Scoring weights (defaults when omitted)

    Returns:
        ScoreBreakdown with the clamped score, the raw score and components
    """
    weights = weights or ScoringWeights()
    text = (request_text or "").lower()

    components: List[Dict[str, Any]] = []
    raw = 0

    knowledge_hits = _tag_hits(text, getattr(candidate, 'knowledge_tags', None))
    if knowledge_hits:
        amount = len(knowledge_hits) * weights.knowledge_tag
        raw += amount
        components.append({'type': 'knowledge_tag', 'amount': amount, 'tags': knowledge_hits})

    curiosity_hits = _tag_hits(text, getattr(candidate, 'curiosity_tags', None))
    if curiosity_hits:
        amount = len(curiosity_hits) * weights.curiosity_tag
        raw += amount
        components.append({'type': 'curiosity_tag', 'amount': amount, 'tags': curiosity_hits})

    if getattr(candidate, 'faculty', None) != requester_faculty:
        raw += weights.faculty_bonus
        components.append({'type': 'faculty_bonus', 'amount': weights.faculty_bonus})

    if getattr(candidate, 'program', None) == requester_program:
        raw -= weights.same_program_penalty
        components.append({'type': 'same_program_penalty', 'amount': -weights.same_program_penalty})

    return ScoreBreakdown(score=max(0, raw), raw_score=raw, components=components)


def calculate_match_score(
    request_text: str,
    requester_faculty: Optional[str],
    requester_program: Optional[str],
    candidate: Any,
    weights: Optional[ScoringWeights] = None
) -> int:
    """Non-negative keyword score of `candidate` for the request."""
    return score_breakdown(
        request_text, requester_faculty, requester_program, candidate, weights
    ).score
