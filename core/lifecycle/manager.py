#!/usr/bin/env python3
"""
Match Lifecycle Manager - creation and state transitions of matches.

State machine per request slot:
    none -> notified -> accepted | declined | expired

Every transition writes the match row and the request status in the same
unit of work, so the two cannot drift apart on the happy path;
reconcile_status() repairs any drift left by older writers.

Expiry is lazy: every read or transition first applies resolve_expiry().
expire_overdue_matches() is an explicit sweep over all overdue rows.

Side effects (emails, rematch after decline) are dispatched as background
tasks after commit and never affect the outcome returned to the caller.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, ContextManager, Optional

from core.config_loader import MatchingConfig
from core.exceptions import (
    NotFound, Forbidden, Expired, AlreadyResolved, DuplicateActiveMatch, SelfMatch
)
from core.interfaces import MatchStore, MatchNotifier, MatchNotice, NotificationResult
from core.lifecycle.dto import MatchDTO, ReconcileResult
from core.lifecycle.status import (
    MatchStatus, RequestStatus, derive_request_status, effective_match_status, is_overdue
)
from core.matcher.dto import ScoredCandidate
from core.tasks import TaskDispatcher
from core.utils import require_id, same_id

logger = logging.getLogger(__name__)

SEND_MATCH_NOTIFICATION = 'send_match_notification'
SEND_CONNECTION_EMAIL = 'send_connection_email'
RETRY_FOR_REQUEST = 'retry_for_request'

ACCEPT = 'accept'
DECLINE = 'decline'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MatchLifecycleManager:
    """Owns match creation, accept/decline/expire transitions and request status sync."""

    def __init__(
        self,
        uow_factory: Callable[[], ContextManager[MatchStore]],
        dispatcher: TaskDispatcher,
        notifier: Optional[MatchNotifier] = None,
        config: Optional[MatchingConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.uow_factory = uow_factory
        self.dispatcher = dispatcher
        self.notifier = notifier
        self.config = config or MatchingConfig()
        self._clock = clock or _utc_now

    def register_tasks(self, dispatcher: Optional[TaskDispatcher] = None) -> None:
        dispatcher = dispatcher or self.dispatcher
        dispatcher.register(SEND_MATCH_NOTIFICATION, self.deliver_match_notification)
        dispatcher.register(SEND_CONNECTION_EMAIL, self.deliver_connection_email)

    def now(self) -> datetime:
        return self._clock()

    # --- Expiry and status sync (run inside the caller's unit of work) ---

    def resolve_expiry(self, store: MatchStore, match: Any) -> bool:
        """Move an overdue notified match to expired. Returns True if it transitioned."""
        if not is_overdue(match.status, match.expires_at, self.now()):
            return False

        store.update_match_status(match.id, MatchStatus.EXPIRED, self.now())
        logger.info(f"Match {match.id} expired (expires_at {match.expires_at.isoformat()})")
        return True

    def sync_request_status(self, store: MatchStore, request: Any) -> str:
        """Derive the request status from its matches and persist it if it differs."""
        matches = store.list_matches(request_id=request.id)
        for match in matches:
            self.resolve_expiry(store, match)

        now = self.now()
        statuses = [effective_match_status(m.status, m.expires_at, now) for m in matches]
        new_status = derive_request_status(statuses, request.status)

        if new_status != request.status:
            logger.info(f"Request {request.id}: {request.status} -> {new_status}")
            store.update_request_status(request.id, new_status, now)
        return new_status

    # --- Creation ---

    def create_match(self, request_id: Any, candidate: ScoredCandidate) -> MatchDTO:
        """
        Insert a notified match for `candidate` and mark the request matched.

        Raises:
            NotFound: Request does not exist
            SelfMatch: Candidate is the requester
            DuplicateActiveMatch: Request already holds a notified/accepted match
                (callers treat this as "already in progress")
        """
        request_id = require_id(request_id, "Request")

        with self.uow_factory() as store:
            request = store.get_request(request_id)
            if request is None:
                raise NotFound(f"Request {request_id} not found")

            if same_id(candidate.profile_id, request.requester_id):
                raise SelfMatch(f"Request {request_id} cannot be matched with its own requester")

            existing = store.get_active_match(request_id)
            if existing is not None and not self.resolve_expiry(store, existing):
                raise DuplicateActiveMatch(request_id, existing.id)

            now = self.now()
            match = store.insert_match(
                request_id=request_id,
                matched_user_id=candidate.profile_id,
                match_score=max(0, int(candidate.score)),
                expires_at=now + timedelta(days=self.config.expiry_days),
                created_at=now,
            )
            store.update_request_status(request_id, RequestStatus.MATCHED, now)

            notice = self._build_notice(store, match, request)
            result = MatchDTO.from_model(match, request_status=RequestStatus.MATCHED)

        logger.info(f"Match {result.id} created for request {request_id} "
                    f"with user {result.matched_user_id} (score {result.score})")
        self.dispatcher.dispatch(SEND_MATCH_NOTIFICATION, notice)
        return result

    # --- Reads ---

    def get_match(self, match_id: Any, acting_user_id: Optional[Any] = None) -> MatchDTO:
        """
        Read a match with lazy expiry applied.

        When acting_user_id is given it must be the matched user or the requester.
        """
        match_id = require_id(match_id, "Match")

        with self.uow_factory() as store:
            match = store.get_match(match_id)
            if match is None:
                raise NotFound(f"Match {match_id} not found")

            request = store.get_request(match.request_id)
            if acting_user_id is not None:
                allowed = same_id(acting_user_id, match.matched_user_id) or (
                    request is not None and same_id(acting_user_id, request.requester_id)
                )
                if not allowed:
                    raise Forbidden(f"User {acting_user_id} cannot view match {match_id}")

            request_status = None
            if self.resolve_expiry(store, match) and request is not None:
                request_status = self.sync_request_status(store, request)
            elif request is not None:
                request_status = request.status

            return MatchDTO.from_model(match, request_status=request_status)

    # --- Transitions ---

    def respond(self, match_id: Any, acting_user_id: Any, action: str) -> MatchDTO:
        if action == ACCEPT:
            return self.accept(match_id, acting_user_id)
        if action == DECLINE:
            return self.decline(match_id, acting_user_id)
        raise ValueError(f'Action must be either "{ACCEPT}" or "{DECLINE}", got {action!r}')

    def accept(self, match_id: Any, acting_user_id: Any) -> MatchDTO:
        """
        Accept a notified match; the request becomes confirmed.

        Raises:
            NotFound, Forbidden, Expired, AlreadyResolved
        """
        result, notice = self._transition(match_id, acting_user_id, MatchStatus.ACCEPTED)
        logger.info(f"Match {result.id} accepted by {acting_user_id}")
        self.dispatcher.dispatch(SEND_CONNECTION_EMAIL, notice)
        return result

    def decline(self, match_id: Any, acting_user_id: Any) -> MatchDTO:
        """
        Decline a notified match and schedule a rematch for its request.

        The rematch runs after rematch_delay_seconds in the background and
        excludes every user who declined this request.

        Raises:
            NotFound, Forbidden, Expired, AlreadyResolved
        """
        result, _ = self._transition(match_id, acting_user_id, MatchStatus.DECLINED)
        logger.info(f"Match {result.id} declined by {acting_user_id}; "
                    f"request {result.request_id} is now {result.request_status}")
        self.dispatcher.dispatch(
            RETRY_FOR_REQUEST,
            result.request_id,
            delay_seconds=self.config.rematch_delay_seconds
        )
        return result

    def _transition(self, match_id: Any, acting_user_id: Any, target: str):
        match_id = require_id(match_id, "Match")
        expired_result = None

        with self.uow_factory() as store:
            match = store.get_match(match_id)
            if match is None:
                raise NotFound(f"Match {match_id} not found")

            if not same_id(match.matched_user_id, acting_user_id):
                raise Forbidden(f"User {acting_user_id} can only respond to their own matches")

            request = store.get_request(match.request_id)

            if self.resolve_expiry(store, match):
                # Commit the expiry, then report it
                request_status = self.sync_request_status(store, request) if request is not None else None
                expired_result = MatchDTO.from_model(match, request_status=request_status)
            elif match.status == MatchStatus.EXPIRED:
                raise Expired(f"Match {match_id} has expired")
            elif match.status != MatchStatus.NOTIFIED:
                raise AlreadyResolved(match_id, match.status)
            else:
                store.update_match_status(match_id, target, self.now())
                request_status = self.sync_request_status(store, request) if request is not None else None
                notice = self._build_notice(store, match, request) if request is not None else None
                result = MatchDTO.from_model(match, request_status=request_status)

        if expired_result is not None:
            self.dispatcher.dispatch(RETRY_FOR_REQUEST, expired_result.request_id)
            raise Expired(f"Match {match_id} has expired")

        return result, notice

    # --- Repair ---

    def reconcile_status(self, request_id: Any) -> ReconcileResult:
        """Recompute a request's status from its matches and fix any drift."""
        request_id = require_id(request_id, "Request")

        with self.uow_factory() as store:
            request = store.get_request(request_id)
            if request is None:
                raise NotFound(f"Request {request_id} not found")

            previous = request.status
            status = self.sync_request_status(store, request)

        result = ReconcileResult(request_id=request_id, previous_status=previous, status=status)
        if result.changed:
            logger.info(f"Fixed request {request_id}: {previous} -> {status}")
        return result

    def expire_overdue_matches(self) -> int:
        """Expire every overdue notified match and resync the affected requests."""
        with self.uow_factory() as store:
            overdue = store.list_overdue_matches(self.now())
            request_ids = set()
            for match in overdue:
                if self.resolve_expiry(store, match):
                    request_ids.add(match.request_id)

            for request_id in request_ids:
                request = store.get_request(request_id)
                if request is not None:
                    self.sync_request_status(store, request)

        if overdue:
            logger.info(f"Expired {len(overdue)} overdue matches across {len(request_ids)} requests")
        return len(overdue)

    # --- Notifications (background tasks) ---

    def deliver_match_notification(self, notice: MatchNotice) -> NotificationResult:
        return self._deliver(notice, SEND_MATCH_NOTIFICATION)

    def deliver_connection_email(self, notice: MatchNotice) -> NotificationResult:
        return self._deliver(notice, SEND_CONNECTION_EMAIL)

    def _deliver(self, notice: Optional[MatchNotice], kind: str) -> NotificationResult:
        if notice is None:
            return NotificationResult(success=False, error="Nothing to send")
        if self.notifier is None:
            logger.info(f"Notifications disabled; skipping {kind} for match {notice.match_id}")
            return NotificationResult(success=False, error="Notifications disabled")

        try:
            if kind == SEND_CONNECTION_EMAIL:
                result = self.notifier.send_connection_email(notice)
            else:
                result = self.notifier.send_match_notification(notice)
        except Exception as e:
            logger.error(f"Notifier raised during {kind} for match {notice.match_id}: {e}", exc_info=True)
            return NotificationResult(success=False, error=str(e))

        if result.success:
            logger.info(f"{kind} sent for match {notice.match_id}")
        else:
            logger.error(f"{kind} failed for match {notice.match_id}: {result.error}")
        return result

    def _build_notice(self, store: MatchStore, match: Any, request: Any) -> MatchNotice:
        requester = store.get_profile(request.requester_id)
        candidate = store.get_profile(match.matched_user_id)
        return MatchNotice(
            match_id=str(match.id),
            request_id=str(request.id),
            request_text=request.request_text,
            score=match.match_score,
            requester_name=getattr(requester, 'full_name', None),
            requester_email=getattr(requester, 'email', None),
            candidate_name=getattr(candidate, 'full_name', None),
            candidate_email=getattr(candidate, 'email', None),
            requester_faculty=getattr(requester, 'faculty', None),
            candidate_faculty=getattr(candidate, 'faculty', None),
            expires_at=match.expires_at,
        )
