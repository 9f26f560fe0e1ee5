#!/usr/bin/env python3
"""
Match and request status rules.

Pure helpers shared by the lifecycle manager, the orchestrator and the
store: which statuses count as active, when a notified match is expired,
and how a request's status is derived from its matches.
"""

from datetime import datetime
from typing import Iterable, Optional


class MatchStatus:
    NOTIFIED = "notified"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class RequestStatus:
    PENDING = "pending"
    MATCHED = "matched"
    CONFIRMED = "confirmed"
    NO_MATCH_FOUND = "no_match_found"


ACTIVE_MATCH_STATUSES = (MatchStatus.NOTIFIED, MatchStatus.ACCEPTED)
RETRYABLE_REQUEST_STATUSES = (RequestStatus.PENDING, RequestStatus.MATCHED)


def is_overdue(status: str, expires_at: Optional[datetime], now: datetime) -> bool:
    """True when a notified match has passed its expiry."""
    if status != MatchStatus.NOTIFIED or expires_at is None:
        return False
    return now > expires_at


def effective_match_status(status: str, expires_at: Optional[datetime], now: datetime) -> str:
    """Status a match has once lazy expiry is applied."""
    if is_overdue(status, expires_at, now):
        return MatchStatus.EXPIRED
    return status


def derive_request_status(match_statuses: Iterable[str], current_status: Optional[str] = None) -> str:
    """
    Compute a request's status from the (expiry-resolved) statuses of its matches.

    confirmed wins over matched; a request with no matches at all keeps
    no_match_found if the initial attempt found nobody, otherwise it is pending.
    """
    statuses = list(match_statuses)

    if MatchStatus.ACCEPTED in statuses:
        return RequestStatus.CONFIRMED
    if MatchStatus.NOTIFIED in statuses:
        return RequestStatus.MATCHED
    if not statuses and current_status == RequestStatus.NO_MATCH_FOUND:
        return RequestStatus.NO_MATCH_FOUND
    return RequestStatus.PENDING
