#!/usr/bin/env python3
"""
Tests for RematchOrchestrator.

Covers submission, single-request retries (decline exclusion, expiry,
exhaustion) and the system-wide sweep.
"""

import unittest
import uuid
from unittest.mock import Mock

from core.config_loader import AppConfig
from core.exceptions import NotFound, RequestLimitExceeded
from core.lifecycle import MatchStatus, RequestStatus
from core.lifecycle.manager import RETRY_FOR_REQUEST
from core.rematch import RematchOrchestrator
from core.rematch.orchestrator import (
    ALREADY_IN_PROGRESS, ALREADY_MATCHED, ERROR, NO_ELIGIBLE_CANDIDATE
)
from tests.fixtures.matching_fixtures import (
    MatchingTestCase, build_test_context, load_match, load_matches, load_request, seed_match, seed_profile,
    seed_request
)

TEXT = "Can someone explain psychology and machine learning?"


class OrchestratorTestCase(MatchingTestCase):

    def setUp(self):
        super().setUp()
        self.orchestrator = self.context.orchestrator
        self.lifecycle = self.context.lifecycle
        self.requester = self.seed_requester()

    def matched_users(self, request_id):
        return [m.matched_user_id for m in load_matches(self.context, request_id)]


class TestSubmitRequest(OrchestratorTestCase):

    def test_submit_creates_match_with_best_candidate(self):
        best = self.seed_candidate("Best", knowledge_tags=["psychology", "machine learning"])
        self.seed_candidate("Second", knowledge_tags=["psychology"])

        result = self.orchestrator.submit_request_and_match(self.requester, TEXT)

        self.assertEqual(result.status, RequestStatus.MATCHED)
        self.assertEqual(result.score, 55)
        self.assertEqual(load_match(self.context, result.match_id).matched_user_id, best)
        self.assertEqual(load_request(self.context, result.request_id).request_text, TEXT)

    def test_submit_without_candidates_sets_no_match_found(self):
        self.seed_candidate("Unrelated", faculty="Science", program="CS")

        result = self.orchestrator.submit_request_and_match(self.requester, TEXT)

        self.assertEqual(result.status, RequestStatus.NO_MATCH_FOUND)
        self.assertIsNone(result.match_id)
        self.assertEqual(load_request(self.context, result.request_id).status, RequestStatus.NO_MATCH_FOUND)

    def test_submit_strips_text_and_rejects_empty(self):
        with self.assertRaises(ValueError):
            self.orchestrator.submit_request_and_match(self.requester, "   ")

    def test_submit_unknown_profile(self):
        with self.assertRaises(NotFound):
            self.orchestrator.submit_request_and_match(uuid.uuid4(), TEXT)

    def test_submit_request_limit(self):
        config = AppConfig()
        config.matching.max_requests_per_user = 2
        context = build_test_context(config, notifier=self.notifier, clock=self.clock)
        self.addCleanup(context.engine.dispose)
        owner = seed_profile(context, name="Busy Asker")
        context.orchestrator.submit_request_and_match(owner, "first")
        context.orchestrator.submit_request_and_match(owner, "second")

        with self.assertRaises(RequestLimitExceeded):
            context.orchestrator.submit_request_and_match(owner, "third")


class TestRetryForRequest(OrchestratorTestCase):

    def setUp(self):
        super().setUp()
        self.first = self.seed_candidate("First", knowledge_tags=["psychology", "machine learning"])
        self.second = self.seed_candidate("Second", knowledge_tags=["psychology"])
        submitted = self.orchestrator.submit_request_and_match(self.requester, TEXT)
        self.request_id = submitted.request_id
        self.match_id = submitted.match_id
        self.dispatcher.pending.clear()

    def test_decline_triggers_rematch_with_next_candidate(self):
        self.lifecycle.decline(self.match_id, self.first)
        self.dispatcher.run_pending()

        self.assertCountEqual(self.matched_users(self.request_id), [self.first, self.second])
        self.assertEqual(load_request(self.context, self.request_id).status, RequestStatus.MATCHED)

    def test_declined_candidates_are_never_rematched(self):
        self.lifecycle.decline(self.match_id, self.first)
        self.dispatcher.run_pending()
        second_match = next(m for m in load_matches(self.context, self.request_id) if m.status == MatchStatus.NOTIFIED)

        self.lifecycle.decline(second_match.id, self.second)
        self.dispatcher.pending.clear()
        self.clock.advance(days=60)  # well past every cooldown

        result = self.orchestrator.retry_for_request(self.request_id)

        self.assertFalse(result.created)
        self.assertEqual(result.reason, NO_ELIGIBLE_CANDIDATE)
        self.assertEqual(load_request(self.context, self.request_id).status, RequestStatus.PENDING)

    def test_expired_candidate_is_eligible_again(self):
        self.clock.advance(days=31)

        result = self.orchestrator.retry_for_request(self.request_id)

        self.assertTrue(result.created)
        self.assertEqual(load_match(self.context, self.match_id).status, MatchStatus.EXPIRED)
        self.assertEqual(load_match(self.context, result.match_id).matched_user_id, self.first)

    def test_expired_candidate_still_in_cooldown_is_skipped(self):
        """Expiry after 7 days still leaves the candidate inside the 30-day cooldown."""
        self.clock.advance(days=8)

        result = self.orchestrator.retry_for_request(self.request_id)

        self.assertTrue(result.created)
        self.assertEqual(load_match(self.context, result.match_id).matched_user_id, self.second)

    def test_active_match_short_circuits(self):
        result = self.orchestrator.retry_for_request(self.request_id)

        self.assertFalse(result.created)
        self.assertEqual(result.reason, ALREADY_MATCHED)
        self.assertEqual(result.match_id, self.match_id)
        self.assertEqual(len(self.matched_users(self.request_id)), 1)

    def test_unknown_request(self):
        with self.assertRaises(NotFound):
            self.orchestrator.retry_for_request(uuid.uuid4())

    def test_concurrent_match_reports_already_in_progress(self):
        self.lifecycle.decline(self.match_id, self.first)
        self.dispatcher.pending.clear()

        # Another worker creates a match between selection and insert
        original = self.lifecycle.create_match

        def race_then_create(request_id, candidate):
            seed_match(self.context, request_id, self.second)
            return original(request_id, candidate)

        self.lifecycle.create_match = race_then_create
        result = self.orchestrator.retry_for_request(self.request_id)

        self.assertFalse(result.created)
        self.assertEqual(result.reason, ALREADY_IN_PROGRESS)
        active = [m for m in load_matches(self.context, self.request_id) if m.status == MatchStatus.NOTIFIED]
        self.assertEqual(len(active), 1)

    def test_excluded_user_ids(self):
        self.lifecycle.decline(self.match_id, self.first)

        with self.context.uow_factory() as store:
            request = store.get_request(self.request_id)
            excluded = RematchOrchestrator.excluded_user_ids(store, request)

        self.assertEqual(excluded, {self.requester, self.first})

    def test_schedule_retry_dispatches_task(self):
        self.orchestrator.schedule_retry(self.request_id, delay_seconds=2)

        task = self.dispatcher.pending[-1]
        self.assertEqual((task.name, task.args, task.delay_seconds), (RETRY_FOR_REQUEST, (self.request_id,), 2))


class TestRetryExhaustion(OrchestratorTestCase):

    def setUp(self):
        super().setUp()
        # Same faculty, other program, no tags: scores 0
        self.seed_candidate("Neighbour", faculty="Science", program="Math")

    def test_exhaustion_leaves_status_unchanged(self):
        lonely = seed_request(self.context, self.requester, "quantum basket weaving", status=RequestStatus.NO_MATCH_FOUND)
        waiting = seed_request(self.context, self.requester, "quantum basket weaving")

        for request_id, status in ((lonely, RequestStatus.NO_MATCH_FOUND), (waiting, RequestStatus.PENDING)):
            result = self.orchestrator.retry_for_request(request_id)
            self.assertFalse(result.created)
            self.assertEqual(result.reason, NO_ELIGIBLE_CANDIDATE)
            self.assertEqual(load_request(self.context, request_id).status, status)


class TestRetryAllUnmatched(OrchestratorTestCase):

    def test_sweep_counts_and_expires_first(self):
        helper = self.seed_candidate("Helper", knowledge_tags=["psychology"])
        fresh = self.seed_candidate("Fresh", knowledge_tags=["jazz"])

        # Pending request a new profile can serve
        served = seed_request(self.context, self.requester, "psychology basics")
        # Matched request whose only match is overdue; its candidate is in cooldown
        stale = seed_request(self.context, self.requester, "psychology in depth", status=RequestStatus.MATCHED)
        stale_match = seed_match(self.context, stale, helper, created_days_ago=10)
        # Request with a live match is not touched
        live = seed_request(self.context, self.requester, "jazz history", status=RequestStatus.MATCHED)
        seed_match(self.context, live, fresh, created_days_ago=1)
        # no_match_found requests are not part of the sweep
        seed_request(self.context, self.requester, "origami", status=RequestStatus.NO_MATCH_FOUND)

        sweep = self.orchestrator.retry_all_unmatched()

        self.assertEqual(load_match(self.context, stale_match).status, MatchStatus.EXPIRED)
        self.assertEqual(sweep.total, 2)
        self.assertEqual(sweep.successful, 0)
        self.assertEqual(sweep.failed, 2)
        self.assertEqual({r.reason for r in sweep.results}, {NO_ELIGIBLE_CANDIDATE})
        self.assertEqual(load_request(self.context, stale).status, RequestStatus.PENDING)
        self.assertEqual(load_request(self.context, served).status, RequestStatus.PENDING)

        newcomer = self.seed_candidate("Newcomer", knowledge_tags=["psychology"])
        sweep = self.orchestrator.retry_all_unmatched()

        self.assertEqual((sweep.total, sweep.successful, sweep.failed), (2, 1, 1))
        created = [r for r in sweep.results if r.created]
        self.assertEqual(load_match(self.context, created[0].match_id).matched_user_id, newcomer)

    def test_sweep_continues_after_errors(self):
        self.seed_candidate("Helper", knowledge_tags=["psychology"])
        orphan = seed_request(self.context, uuid.uuid4(), "psychology without a profile")
        good = seed_request(self.context, self.requester, "psychology for beginners")

        sweep = self.orchestrator.retry_all_unmatched()

        by_request = {r.request_id: r for r in sweep.results}
        self.assertEqual(by_request[orphan].reason, ERROR)
        self.assertTrue(by_request[good].created)
        self.assertEqual((sweep.successful, sweep.failed), (1, 1))

    def test_sweep_pauses_between_items(self):
        sleep = Mock()
        self.context.config.matching.sweep_item_delay_seconds = 0.5
        orchestrator = RematchOrchestrator(
            self.context.uow_factory,
            self.context.selector,
            self.lifecycle,
            self.dispatcher,
            config=self.context.config.matching,
            sleep=sleep
        )
        for text in ("one", "two", "three"):
            seed_request(self.context, self.requester, text)

        orchestrator.retry_all_unmatched()

        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(0.5)

    def test_empty_sweep(self):
        sweep = self.orchestrator.retry_all_unmatched()
        self.assertEqual(sweep.to_dict(), {'total': 0, 'successful': 0, 'failed': 0, 'results': []})


if __name__ == '__main__':
    unittest.main()
