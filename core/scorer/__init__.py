#!/usr/bin/env python3
"""
Scoring Module - keyword compatibility between a request and a candidate.

Public API:
- calculate_match_score: integer score (>= 0) for one candidate
- score_breakdown: same score with per-rule details
- normalize_tags: canonical form of profile tags

- models.py: Data structures (ScoreBreakdown)
- keyword_score.py: Scoring rules
"""

from core.scorer.models import ScoreBreakdown
from core.scorer.keyword_score import calculate_match_score, score_breakdown, normalize_tag, normalize_tags

__all__ = ['calculate_match_score', 'score_breakdown', 'normalize_tag', 'normalize_tags', 'ScoreBreakdown']
