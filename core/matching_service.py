#!/usr/bin/env python3
"""
Matching Service - the operations exposed to the HTTP layer and the CLI.

Thin facade over the orchestrator and lifecycle manager that adds the
ownership checks those callers need (request owner / admin).
"""

import logging
from typing import Any, Callable, ContextManager, Iterable, Optional

from core.exceptions import ActiveMatchExists, Forbidden, NotFound
from core.interfaces import MatchStore
from core.lifecycle.dto import MatchDTO, ReconcileResult
from core.lifecycle.manager import MatchLifecycleManager
from core.rematch.dto import RetryResult, SubmitResult, SweepResult
from core.rematch.orchestrator import RematchOrchestrator
from core.utils import require_id, same_id

logger = logging.getLogger(__name__)


class MatchingService:
    def __init__(
        self,
        uow_factory: Callable[[], ContextManager[MatchStore]],
        lifecycle: MatchLifecycleManager,
        orchestrator: RematchOrchestrator,
        admin_user_ids: Iterable[str] = ()
    ):
        self.uow_factory = uow_factory
        self.lifecycle = lifecycle
        self.orchestrator = orchestrator
        self.admin_user_ids = {str(uid) for uid in admin_user_ids}

    def is_admin(self, user_id: Optional[Any]) -> bool:
        return user_id is not None and str(user_id) in self.admin_user_ids

    # --- Exposed operations ---

    def submit_request_and_match(self, requester_id: Any, request_text: str) -> SubmitResult:
        return self.orchestrator.submit_request_and_match(requester_id, request_text)

    def retry_matching_for_request(
        self,
        request_id: Any,
        acting_user_id: Optional[Any] = None,
        is_admin: bool = False
    ) -> RetryResult:
        """Manual retry. When acting_user_id is given it must own the request unless admin."""
        request_id = require_id(request_id, "Request")
        if acting_user_id is not None and not (is_admin or self.is_admin(acting_user_id)):
            self._require_owner(request_id, acting_user_id)
        return self.orchestrator.retry_for_request(request_id)

    def retry_all_unmatched(self) -> SweepResult:
        return self.orchestrator.retry_all_unmatched()

    def respond_to_match(self, match_id: Any, user_id: Any, action: str) -> MatchDTO:
        return self.lifecycle.respond(match_id, user_id, action)

    # --- Supplementary operations ---

    def get_match(self, match_id: Any, acting_user_id: Optional[Any] = None) -> MatchDTO:
        return self.lifecycle.get_match(match_id, acting_user_id)

    def reconcile_status(
        self,
        request_id: Any,
        acting_user_id: Optional[Any] = None,
        is_admin: bool = False
    ) -> ReconcileResult:
        request_id = require_id(request_id, "Request")
        if acting_user_id is not None and not (is_admin or self.is_admin(acting_user_id)):
            self._require_owner(request_id, acting_user_id)
        return self.lifecycle.reconcile_status(request_id)

    def reconcile_user_requests(self, user_id: Any) -> int:
        """Repair every request of one user. Returns how many changed."""
        user_id = require_id(user_id, "Profile")
        with self.uow_factory() as store:
            request_ids = [r.id for r in store.list_requests(requester_id=user_id)]

        fixed = 0
        for request_id in request_ids:
            if self.lifecycle.reconcile_status(request_id).changed:
                fixed += 1

        logger.info(f"Reconciled {len(request_ids)} requests for user {user_id}, fixed {fixed}")
        return fixed

    def delete_request(self, request_id: Any, acting_user_id: Any) -> None:
        """
        Delete a request and its matches.

        Raises:
            NotFound, Forbidden (not the requester),
            ActiveMatchExists (a notified/accepted match remains)
        """
        request_id = require_id(request_id, "Request")

        with self.uow_factory() as store:
            request = store.get_request(request_id)
            if request is None:
                raise NotFound(f"Request {request_id} not found")
            if not same_id(request.requester_id, acting_user_id):
                raise Forbidden(f"User {acting_user_id} can only delete their own requests")

            for match in store.list_matches(request_id=request_id):
                self.lifecycle.resolve_expiry(store, match)

            active = store.get_active_match(request_id)
            if active is not None:
                raise ActiveMatchExists(
                    f"Request {request_id} has an active match ({active.status}); it cannot be deleted"
                )

            store.delete_request(request_id)

        logger.info(f"Request {request_id} deleted by {acting_user_id}")

    def expire_overdue_matches(self) -> int:
        return self.lifecycle.expire_overdue_matches()

    def on_profile_updated(self, user_id: Any) -> None:
        """A new or updated profile may fit requests nobody matched before."""
        user_id = require_id(user_id, "Profile")
        logger.info(f"Profile {user_id} updated; scheduling sweep of unmatched requests")
        self.orchestrator.schedule_sweep()

    def _require_owner(self, request_id: Any, acting_user_id: Any) -> None:
        with self.uow_factory() as store:
            request = store.get_request(request_id)
            if request is None:
                raise NotFound(f"Request {request_id} not found")
            if not same_id(request.requester_id, acting_user_id):
                raise Forbidden(f"User {acting_user_id} does not own request {request_id}")
