#!/usr/bin/env python3
"""
Rematch Orchestrator - finds requests that need a (new) match and drives
the lifecycle manager for them.

Triggers:
- new request submission (synchronous, sets no_match_found when nobody fits)
- decline (deferred single-request retry, dispatched by the lifecycle manager)
- manual retry by the requester or an admin
- profile creation/update and admin sweeps (retry_all_unmatched)

Candidates who declined a request are excluded from it for good; candidates
whose match merely expired are eligible again.
"""

import logging
import time
from typing import Any, Callable, ContextManager, List, Optional, Set

from core.config_loader import MatchingConfig
from core.exceptions import DuplicateActiveMatch, MatchingError, NotFound, RequestLimitExceeded
from core.interfaces import MatchStore
from core.lifecycle.manager import MatchLifecycleManager, RETRY_FOR_REQUEST
from core.lifecycle.status import MatchStatus, RequestStatus, RETRYABLE_REQUEST_STATUSES
from core.matcher.selector import CandidateSelector
from core.rematch.dto import RetryResult, SubmitResult, SweepResult
from core.tasks import TaskDispatcher
from core.utils import require_id

logger = logging.getLogger(__name__)

RETRY_ALL_UNMATCHED = 'retry_all_unmatched'

# RetryResult.reason values
ALREADY_MATCHED = 'already_matched'
ALREADY_IN_PROGRESS = 'already_in_progress'
NO_ELIGIBLE_CANDIDATE = 'no_eligible_candidate'
ERROR = 'error'


class RematchOrchestrator:
    def __init__(
        self,
        uow_factory: Callable[[], ContextManager[MatchStore]],
        selector: CandidateSelector,
        lifecycle: MatchLifecycleManager,
        dispatcher: TaskDispatcher,
        config: Optional[MatchingConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.uow_factory = uow_factory
        self.selector = selector
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.config = config or MatchingConfig()
        self._sleep = sleep

    def register_tasks(self, dispatcher: Optional[TaskDispatcher] = None) -> None:
        dispatcher = dispatcher or self.dispatcher
        dispatcher.register(RETRY_FOR_REQUEST, self.retry_for_request)
        dispatcher.register(RETRY_ALL_UNMATCHED, self.retry_all_unmatched)

    @staticmethod
    def excluded_user_ids(store: MatchStore, request: Any) -> Set[Any]:
        """The requester plus everyone who declined this request."""
        declined = store.list_matches(request_id=request.id, statuses=[MatchStatus.DECLINED])
        excluded = {m.matched_user_id for m in declined}
        excluded.add(request.requester_id)
        return excluded

    def submit_request_and_match(self, requester_id: Any, request_text: str) -> SubmitResult:
        """
        Create a request and try to match it immediately against the whole pool.

        When nobody clears the threshold the request becomes no_match_found.

        Raises:
            ValueError: Empty request text
            NotFound: Requester profile does not exist
            RequestLimitExceeded: Requester already holds max_requests_per_user requests
        """
        requester_id = require_id(requester_id, "Profile")
        text = (request_text or '').strip()
        if not text:
            raise ValueError("Request text is required")

        with self.uow_factory() as store:
            if store.get_profile(requester_id) is None:
                raise NotFound(f"Profile {requester_id} not found")

            existing = store.count_requests_for_user(requester_id)
            if existing >= self.config.max_requests_per_user:
                raise RequestLimitExceeded(
                    f"User {requester_id} already has {existing} requests "
                    f"(limit {self.config.max_requests_per_user})"
                )

            request = store.create_request(requester_id, text, created_at=self.lifecycle.now())
            request_id = request.id
            candidate = self.selector.select_best_candidate(store, request, {requester_id})

            if candidate is None:
                store.update_request_status(request_id, RequestStatus.NO_MATCH_FOUND, self.lifecycle.now())

        logger.info(f"Request {request_id} submitted by {requester_id}")

        if candidate is None:
            logger.info(f"No match found for request {request_id}")
            return SubmitResult(request_id=request_id, status=RequestStatus.NO_MATCH_FOUND)

        try:
            match = self.lifecycle.create_match(request_id, candidate)
        except DuplicateActiveMatch:
            existing_match = self._find_active_match(request_id)
            return SubmitResult(
                request_id=request_id,
                status=RequestStatus.MATCHED,
                match_id=existing_match.id if existing_match is not None else None,
            )

        return SubmitResult(
            request_id=request_id,
            status=match.request_status,
            match_id=match.id,
            score=match.score,
        )

    def retry_for_request(self, request_id: Any) -> RetryResult:
        """
        Try to give a request a new match.

        Running out of candidates is not an error and leaves the request
        status as it is. A request that already holds an active match is
        reported as such.

        Raises:
            NotFound: Request does not exist
        """
        request_id = require_id(request_id, "Request")
        logger.info(f"Retrying matching for request {request_id}")

        with self.uow_factory() as store:
            request = store.get_request(request_id)
            if request is None:
                raise NotFound(f"Request {request_id} not found")

            expired_any = False
            for match in store.list_matches(request_id=request_id, statuses=[MatchStatus.NOTIFIED]):
                expired_any = self.lifecycle.resolve_expiry(store, match) or expired_any

            active = store.get_active_match(request_id)
            if active is not None:
                logger.info(f"Request {request_id} already has active match {active.id}")
                return RetryResult(request_id, created=False, match_id=active.id, reason=ALREADY_MATCHED)

            if expired_any:
                self.lifecycle.sync_request_status(store, request)

            excluded = self.excluded_user_ids(store, request)
            candidate = self.selector.select_best_candidate(store, request, excluded)

        if candidate is None:
            logger.info(f"No new candidate for request {request_id}; status left unchanged")
            return RetryResult(request_id, created=False, reason=NO_ELIGIBLE_CANDIDATE)

        try:
            match = self.lifecycle.create_match(request_id, candidate)
        except DuplicateActiveMatch:
            existing = self._find_active_match(request_id)
            logger.info(f"Request {request_id} was matched concurrently; skipping")
            return RetryResult(
                request_id,
                created=False,
                match_id=existing.id if existing is not None else None,
                reason=ALREADY_IN_PROGRESS,
            )

        logger.info(f"Retry match {match.id} created for request {request_id} with score {match.score}")
        return RetryResult(request_id, created=True, match_id=match.id, score=match.score)

    def find_unmatched_requests(self) -> List[Any]:
        """Ids of pending/matched requests with no notified or accepted match."""
        with self.uow_factory() as store:
            requests = store.list_requests(statuses=RETRYABLE_REQUEST_STATUSES)
            return [r.id for r in requests if store.get_active_match(r.id) is None]

    def retry_all_unmatched(self) -> SweepResult:
        """Expire overdue matches, then retry every unmatched request one by one."""
        logger.info("Starting retry for all unmatched requests")

        self.lifecycle.expire_overdue_matches()
        request_ids = self.find_unmatched_requests()
        logger.info(f"Found {len(request_ids)} unmatched requests to retry")

        sweep = SweepResult(total=len(request_ids))
        for index, request_id in enumerate(request_ids):
            try:
                result = self.retry_for_request(request_id)
            except MatchingError as e:
                logger.error(f"Retry for request {request_id} failed: {e}")
                result = RetryResult(request_id, created=False, reason=ERROR)

            sweep.results.append(result)
            if result.created:
                sweep.successful += 1
            else:
                sweep.failed += 1

            if index < len(request_ids) - 1 and self.config.sweep_item_delay_seconds > 0:
                self._sleep(self.config.sweep_item_delay_seconds)

        logger.info(f"Retry completed: {sweep.successful} successful, {sweep.failed} failed")
        return sweep

    def schedule_retry(self, request_id: Any, delay_seconds: float = 0.0) -> None:
        self.dispatcher.dispatch(RETRY_FOR_REQUEST, request_id, delay_seconds=delay_seconds)

    def schedule_sweep(self, delay_seconds: float = 0.0) -> None:
        self.dispatcher.dispatch(RETRY_ALL_UNMATCHED, delay_seconds=delay_seconds)

    def _find_active_match(self, request_id: Any):
        with self.uow_factory() as store:
            return store.get_active_match(request_id)
