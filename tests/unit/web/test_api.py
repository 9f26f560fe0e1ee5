#!/usr/bin/env python3
"""
HTTP tests for the matching API.

The app runs against an in-memory context (inline task dispatcher, mock
notifier, fake clock) injected through dependency_overrides.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from core.lifecycle import MatchStatus, RequestStatus
from tests.fixtures.matching_fixtures import load_request, seed_match, seed_profile, seed_request
from web.backend.app import create_app
from web.backend.dependencies import get_context, validate_uuid

pytestmark = pytest.mark.web

ADMIN_ID = str(uuid.uuid4())


@pytest.fixture
def app_config(app_config):
    app_config.web.admin_user_ids = [ADMIN_ID]
    return app_config


@pytest.fixture
def client(context):
    app = create_app()
    app.dependency_overrides[get_context] = lambda: context
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scenario(context):
    requester = seed_profile(context, name="Asker")
    candidate = seed_profile(context, faculty="Arts", program="Psych", knowledge_tags=["psychology"], name="Helper")
    return requester, candidate


def as_user(user_id):
    return {"X-User-Id": str(user_id)}


def submit(client, user_id, text="Who knows psychology?"):
    return client.post("/api/requests", json={"text": text}, headers=as_user(user_id))


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "synapse-matching"}


class TestRequests:
    def test_submit_matches_immediately(self, client, scenario):
        requester, candidate = scenario

        response = submit(client, requester)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == RequestStatus.MATCHED
        assert body["score"] == 40
        assert body["match_id"]

    def test_submit_without_candidates(self, client, context):
        lonely = seed_profile(context, name="Lonely")

        body = submit(client, lonely).json()

        assert body["status"] == RequestStatus.NO_MATCH_FOUND
        assert body["match_id"] is None

    def test_missing_user_header(self, client):
        response = client.post("/api/requests", json={"text": "hi"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_malformed_user_header(self, client):
        response = client.post("/api/requests", json={"text": "hi"}, headers={"X-User-Id": "bob"})
        assert response.status_code == 401

    def test_unknown_requester(self, client):
        response = submit(client, uuid.uuid4())
        assert response.status_code == 404
        assert response.json()["type"] == "NotFound"

    def test_blank_text(self, client, scenario):
        response = submit(client, scenario[0], text="   ")
        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"

    def test_submit_rate_limited_per_user(self, client, context):
        user = seed_profile(context, name="Eager")
        codes = [submit(client, user, text=f"question {i}").status_code for i in range(6)]
        assert codes == [200] * 5 + [429]

        other = seed_profile(context, name="Patient")
        assert submit(client, other).status_code == 200

    def test_retry_by_owner(self, client, context, scenario):
        requester, _ = scenario
        request_id = seed_request(context, requester, "psychology")

        response = client.post(f"/api/requests/{request_id}/retry", headers=as_user(requester))

        assert response.status_code == 200
        assert response.json()["created"] is True
        assert load_request(context, request_id).status == RequestStatus.MATCHED

    def test_retry_by_stranger(self, client, context, scenario):
        requester, candidate = scenario
        request_id = seed_request(context, requester, "psychology")

        response = client.post(f"/api/requests/{request_id}/retry", headers=as_user(candidate))
        assert response.status_code == 403

    def test_retry_bad_id(self, client, scenario):
        response = client.post("/api/requests/not-a-uuid/retry", headers=as_user(scenario[0]))
        assert response.status_code == 400

    def test_reconcile_request(self, client, context, scenario):
        requester, candidate = scenario
        request_id = seed_request(context, requester, "psychology", status=RequestStatus.MATCHED)
        seed_match(context, request_id, candidate, status=MatchStatus.DECLINED)

        body = client.post(f"/api/requests/{request_id}/reconcile", headers=as_user(requester)).json()

        assert body["changed"] is True
        assert body["previous_status"] == RequestStatus.MATCHED
        assert body["status"] == RequestStatus.PENDING

    def test_reconcile_all_of_mine(self, client, context, scenario):
        requester, _ = scenario
        seed_request(context, requester, "psychology", status=RequestStatus.MATCHED)

        body = client.post("/api/requests/reconcile", headers=as_user(requester)).json()
        assert body["fixed"] == 1

    def test_delete_blocked_by_active_match(self, client, scenario):
        requester, _ = scenario
        request_id = submit(client, requester).json()["request_id"]

        response = client.delete(f"/api/requests/{request_id}", headers=as_user(requester))

        assert response.status_code == 409
        assert response.json()["type"] == "ActiveMatchExists"

    def test_delete(self, client, context, scenario):
        requester, _ = scenario
        request_id = seed_request(context, requester, "origami")

        response = client.delete(f"/api/requests/{request_id}", headers=as_user(requester))

        assert response.status_code == 200
        assert load_request(context, request_id) is None


class TestMatches:
    @pytest.fixture
    def match_id(self, client, scenario):
        return submit(client, scenario[0]).json()["match_id"]

    def test_get_match(self, client, scenario, match_id):
        requester, candidate = scenario

        for user in (requester, candidate):
            body = client.get(f"/api/matches/{match_id}", headers=as_user(user)).json()
            assert body["status"] == MatchStatus.NOTIFIED
            assert body["matched_user_id"] == str(candidate)

        assert client.get(f"/api/matches/{match_id}", headers=as_user(uuid.uuid4())).status_code == 403

    def test_get_match_after_expiry(self, client, clock, scenario, match_id):
        clock.advance(days=8)

        body = client.get(f"/api/matches/{match_id}", headers=as_user(scenario[0])).json()

        assert body["status"] == MatchStatus.EXPIRED
        assert body["request_status"] == RequestStatus.PENDING

    def test_unknown_match(self, client, scenario):
        response = client.get(f"/api/matches/{uuid.uuid4()}", headers=as_user(scenario[0]))
        assert response.status_code == 404

    def test_accept(self, client, context, scenario, match_id):
        response = client.post(f"/api/matches/{match_id}/respond", json={"action": "accept"},
                               headers=as_user(scenario[1]))

        assert response.status_code == 200
        assert response.json()["status"] == MatchStatus.ACCEPTED
        assert response.json()["request_status"] == RequestStatus.CONFIRMED

        context.dispatcher.run_pending()
        context.notifier.send_connection_email.assert_called_once()

    def test_respond_twice(self, client, scenario, match_id):
        client.post(f"/api/matches/{match_id}/respond", json={"action": "decline"}, headers=as_user(scenario[1]))

        response = client.post(f"/api/matches/{match_id}/respond", json={"action": "accept"},
                               headers=as_user(scenario[1]))

        assert response.status_code == 409
        assert response.json()["type"] == "AlreadyResolved"

    def test_respond_by_requester(self, client, scenario, match_id):
        response = client.post(f"/api/matches/{match_id}/respond", json={"action": "accept"},
                               headers=as_user(scenario[0]))
        assert response.status_code == 403

    def test_respond_after_expiry(self, client, clock, scenario, match_id):
        clock.advance(days=7, minutes=1)

        response = client.post(f"/api/matches/{match_id}/respond", json={"action": "accept"},
                               headers=as_user(scenario[1]))

        assert response.status_code == 410
        assert response.json()["type"] == "Expired"

    def test_invalid_action(self, client, scenario, match_id):
        response = client.post(f"/api/matches/{match_id}/respond", json={"action": "maybe"},
                               headers=as_user(scenario[1]))
        assert response.status_code == 422


class TestAdminAndProfiles:
    def test_retry_all_requires_admin(self, client, scenario):
        assert client.post("/api/admin/retry-all", headers=as_user(scenario[0])).status_code == 403

    def test_retry_all(self, client, context, scenario):
        request_id = seed_request(context, scenario[0], "psychology")

        body = client.post("/api/admin/retry-all", headers=as_user(ADMIN_ID)).json()

        assert (body["total"], body["successful"], body["failed"]) == (1, 1, 0)
        assert body["results"][0]["request_id"] == str(request_id)

    def test_expire(self, client, context, scenario):
        request_id = seed_request(context, scenario[0], "psychology", status=RequestStatus.MATCHED)
        seed_match(context, request_id, scenario[1], created_days_ago=8)

        body = client.post("/api/admin/expire", headers=as_user(ADMIN_ID)).json()
        assert body["expired"] == 1

    def test_profile_updated_schedules_sweep(self, client, context, scenario):
        response = client.post(f"/api/profiles/{scenario[1]}/updated", headers=as_user(scenario[1]))

        assert response.status_code == 200
        assert context.dispatcher.dispatched_names() == ["retry_all_unmatched"]

    def test_profile_updated_for_someone_else(self, client, scenario):
        response = client.post(f"/api/profiles/{scenario[1]}/updated", headers=as_user(scenario[0]))
        assert response.status_code == 403


def test_validate_uuid():
    value = str(uuid.uuid4())
    assert validate_uuid(value) == value
    with pytest.raises(Exception) as exc_info:
        validate_uuid("nope", "match_id")
    assert exc_info.value.status_code == 400
