"""Matcher Module - candidate selection for a request."""
from core.matcher.dto import ScoredCandidate
from core.matcher.selector import CandidateSelector

__all__ = ['CandidateSelector', 'ScoredCandidate']
