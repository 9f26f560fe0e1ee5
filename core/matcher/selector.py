#!/usr/bin/env python3
"""
Candidate Selector - pick the best eligible profile for a request.

Pipeline:
1. Fetch completed profiles, minus the requester and the excluded ids
2. Score each one with the keyword scorer
3. Keep scores >= score_threshold
4. Sort by score descending, ties by ascending id
5. Skip candidates in cooldown (matched to ANY request within cooldown_days)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Optional, Set

from core.config_loader import MatchingConfig
from core.exceptions import NotFound
from core.interfaces import MatchStore
from core.matcher.dto import ScoredCandidate
from core.scorer import score_breakdown

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CandidateSelector:
    """
    Scores and filters candidates for a single request.

    Holds no store of its own; every call receives the store of the
    caller's unit of work.
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or MatchingConfig()
        self._clock = clock or _utc_now

    def rank_candidates(
        self,
        store: MatchStore,
        request: Any,
        excluded_user_ids: Iterable[Any] = ()
    ) -> List[ScoredCandidate]:
        """
        Score every eligible profile and return those above threshold, best first.

        Cooldown is not applied here.

        Raises:
            NotFound: If the requester's profile does not exist.
        """
        requester = store.get_profile(request.requester_id)
        if requester is None:
            raise NotFound(f"Requester profile {request.requester_id} not found")

        excluded: Set[Any] = {uid for uid in excluded_user_ids if uid is not None}
        excluded.add(request.requester_id)

        profiles = store.list_completed_profiles(excluded)

        scored: List[ScoredCandidate] = []
        for profile in profiles:
            if profile.id in excluded:
                continue

            breakdown = score_breakdown(
                request.request_text,
                requester.faculty,
                requester.program,
                profile,
                self.config.scoring,
            )
            if self.config.debug_scoring:
                logger.debug(f"Request {request.id} candidate {profile.id}: {breakdown.score} {breakdown.components}")

            if breakdown.score < self.config.score_threshold:
                continue

            scored.append(ScoredCandidate(
                profile_id=profile.id,
                score=breakdown.score,
                faculty=profile.faculty,
                program=profile.program,
                components=breakdown.components,
            ))

        scored.sort(key=lambda c: (-c.score, str(c.profile_id)))
        return scored

    def is_in_cooldown(self, store: MatchStore, user_id: Any) -> bool:
        """True if user_id was offered as a match to any request within cooldown_days."""
        if self.config.cooldown_days <= 0:
            return False
        since = self._clock() - timedelta(days=self.config.cooldown_days)
        return len(store.list_recent_matches_for_user(user_id, since)) > 0

    def select_best_candidate(
        self,
        store: MatchStore,
        request: Any,
        excluded_user_ids: Iterable[Any] = ()
    ) -> Optional[ScoredCandidate]:
        """
        Return the highest-scoring candidate outside cooldown, or None.

        None is a normal outcome (nobody eligible), not an error.
        """
        ranked = self.rank_candidates(store, request, excluded_user_ids)
        if not ranked:
            logger.info(f"No candidates above threshold {self.config.score_threshold} for request {request.id}")
            return None

        for candidate in ranked:
            if self.is_in_cooldown(store, candidate.profile_id):
                logger.info(f"Candidate {candidate.profile_id} in cooldown, trying next for request {request.id}")
                continue

            logger.info(f"Selected candidate {candidate.profile_id} (score {candidate.score}) for request {request.id}")
            return candidate

        logger.info(f"All {len(ranked)} candidates for request {request.id} are in cooldown")
        return None
