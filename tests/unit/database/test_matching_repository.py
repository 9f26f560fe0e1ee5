#!/usr/bin/env python3
"""
Store tests against an in-memory SQLite database built from the real models.

Covers the one-active-match-per-request index, the cooldown and overdue
queries, request deletion and the unit-of-work error mapping.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import DuplicateActiveMatch, NotFound, StoreError
from core.lifecycle.status import MatchStatus
from database.uow import matching_uow
from tests.fixtures.matching_fixtures import load_matches, seed_match, seed_profile, seed_request

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def people(context):
    requester = seed_profile(context, name="Asker")
    candidate = seed_profile(context, faculty="Arts", program="Psych", name="Helper")
    request_id = seed_request(context, requester, "psychology")
    return requester, candidate, request_id


def _insert(context, request_id, user_id, status=None, created_at=NOW):
    with matching_uow(context.session_factory) as store:
        if status is None:
            match = store.insert_match(request_id, user_id, 20, expires_at=created_at + timedelta(days=7),
                                       created_at=created_at)
        else:
            match = store.matches.insert_match(request_id, user_id, 20, expires_at=created_at + timedelta(days=7),
                                               created_at=created_at, status=status)
        return match.id


class TestActiveMatchIndex:
    def test_second_active_match_raises_duplicate(self, context, people):
        _, candidate, request_id = people
        other = seed_profile(context, name="Other")
        _insert(context, request_id, candidate)

        with pytest.raises(DuplicateActiveMatch) as exc_info:
            _insert(context, request_id, other)

        assert exc_info.value.request_id == request_id
        assert len(load_matches(context, request_id)) == 1

    def test_accepted_counts_as_active(self, context, people):
        _, candidate, request_id = people
        _insert(context, request_id, candidate, status=MatchStatus.ACCEPTED)

        with pytest.raises(DuplicateActiveMatch):
            _insert(context, request_id, seed_profile(context, name="Other"))

    def test_resolved_matches_do_not_block(self, context, people):
        _, candidate, request_id = people
        _insert(context, request_id, candidate, status=MatchStatus.DECLINED)
        _insert(context, request_id, seed_profile(context, name="Second"), status=MatchStatus.EXPIRED)
        _insert(context, request_id, seed_profile(context, name="Third"))

        assert len(load_matches(context, request_id)) == 3

    def test_active_match_per_request_not_per_user(self, context, people):
        requester, candidate, request_id = people
        other_request = seed_request(context, requester, "jazz")
        _insert(context, request_id, candidate)
        _insert(context, other_request, candidate)

        with matching_uow(context.session_factory) as store:
            assert store.get_active_match(request_id).matched_user_id == candidate
            assert store.get_active_match(other_request).request_id == other_request


class TestMatchQueries:
    def test_recent_matches_cover_every_status_and_request(self, context, people):
        requester, candidate, request_id = people
        other_request = seed_request(context, requester, "jazz")
        _insert(context, request_id, candidate, status=MatchStatus.DECLINED, created_at=NOW - timedelta(days=5))
        _insert(context, other_request, candidate, status=MatchStatus.EXPIRED, created_at=NOW - timedelta(days=40))

        with matching_uow(context.session_factory) as store:
            recent = store.list_recent_matches_for_user(candidate, NOW - timedelta(days=30))
            everything = store.list_recent_matches_for_user(candidate, NOW - timedelta(days=60))

        assert [m.status for m in recent] == [MatchStatus.DECLINED]
        assert len(everything) == 2

    def test_overdue_matches(self, context, people):
        _, candidate, request_id = people
        overdue = _insert(context, request_id, candidate, created_at=NOW - timedelta(days=8))
        second_request = seed_request(context, seed_profile(context, name="Asker 2"), "jazz")
        _insert(context, second_request, candidate, status=MatchStatus.DECLINED, created_at=NOW - timedelta(days=8))

        with matching_uow(context.session_factory) as store:
            rows = store.list_overdue_matches(NOW)

        assert [m.id for m in rows] == [overdue]

    def test_list_matches_filters(self, context, people):
        _, candidate, request_id = people
        seed_match(context, request_id, candidate, status=MatchStatus.DECLINED)
        other = seed_profile(context, name="Other")
        seed_match(context, request_id, other)

        with matching_uow(context.session_factory) as store:
            declined = store.list_matches(request_id=request_id, statuses=[MatchStatus.DECLINED])
            by_user = store.list_matches(matched_user_id=other)

        assert [m.matched_user_id for m in declined] == [candidate]
        assert [m.status for m in by_user] == [MatchStatus.NOTIFIED]

    def test_timestamps_round_trip_as_utc(self, context, people):
        _, candidate, request_id = people
        match_id = _insert(context, request_id, candidate)

        with matching_uow(context.session_factory) as store:
            match = store.get_match(match_id)
            created_at, expires_at = match.created_at, match.expires_at

        assert created_at == NOW
        assert expires_at.tzinfo is not None
        assert expires_at == NOW + timedelta(days=7)


class TestProfilesAndRequests:
    def test_completed_profiles_only_and_excluded(self, context, people):
        requester, candidate, _ = people
        seed_profile(context, name="Draft", completed=False)
        third = seed_profile(context, name="Third")

        with matching_uow(context.session_factory) as store:
            ids = {p.id for p in store.list_completed_profiles([requester])}

        assert ids == {candidate, third}

    def test_count_and_list_requests(self, context, people):
        requester, _, request_id = people
        seed_request(context, requester, "jazz", status="no_match_found")

        with matching_uow(context.session_factory) as store:
            assert store.count_requests_for_user(requester) == 2
            pending = store.list_requests(statuses=["pending", "matched"])
            mine = store.list_requests(requester_id=requester)

        assert [r.id for r in pending] == [request_id]
        assert len(mine) == 2

    def test_delete_request_removes_its_matches(self, context, people):
        _, candidate, request_id = people
        seed_match(context, request_id, candidate, status=MatchStatus.DECLINED)

        with matching_uow(context.session_factory) as store:
            assert store.delete_request(request_id) is True
            assert store.delete_request(uuid.uuid4()) is False

        with matching_uow(context.session_factory) as store:
            assert store.get_request(request_id) is None
            assert store.list_matches(request_id=request_id) == []

    def test_update_request_status(self, context, people):
        _, _, request_id = people
        with matching_uow(context.session_factory) as store:
            store.update_request_status(request_id, "matched")
            assert store.update_request_status(uuid.uuid4(), "matched") is None

        with matching_uow(context.session_factory) as store:
            assert store.get_request(request_id).status == "matched"

    def test_status_updates_take_explicit_timestamps(self, context, people):
        requester, candidate, request_id = people
        match_id = _insert(context, request_id, candidate)
        later = NOW + timedelta(days=3)

        with matching_uow(context.session_factory) as store:
            store.update_match_status(match_id, MatchStatus.DECLINED, later)
            store.update_request_status(request_id, "matched", later)
            dated = store.create_request(requester, "dated", created_at=NOW)
            assert dated.created_at == NOW

        with matching_uow(context.session_factory) as store:
            assert store.get_match(match_id).updated_at == later
            assert store.get_request(request_id).updated_at == later


class TestUnitOfWork:
    def test_rolls_back_on_matching_error(self, context, people):
        requester, _, _ = people

        with pytest.raises(NotFound):
            with matching_uow(context.session_factory) as store:
                store.create_request(requester, "never saved")
                raise NotFound("abort")

        with matching_uow(context.session_factory) as store:
            assert store.count_requests_for_user(requester) == 1

    def test_driver_errors_become_store_error(self):
        session = MagicMock()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))
        factory = MagicMock(return_value=session)

        with pytest.raises(StoreError):
            with matching_uow(factory):
                pass

        session.rollback.assert_called_once()
        session.close.assert_called_once()
