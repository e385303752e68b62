"""Role-based visibility rules for conference reads and listings."""

from __future__ import annotations

from conference_scheduler.domain.errors import ForbiddenUser
from conference_scheduler.domain.models import (
    Conference,
    ConferenceQuery,
    ConferenceStatus,
    Principal,
)


def is_restricted(principal: Principal) -> bool:
    """Plain users are restricted; coordinators and system callers are not."""
    return not principal.is_system and not principal.is_coordinator


def ensure_can_view(principal: Principal, conference: Conference) -> None:
    """Only the host and coordinator-level roles may see a non-approved conference."""
    if conference.status == ConferenceStatus.APPROVED:
        return
    if is_restricted(principal) and conference.host_id != principal.id:
        raise ForbiddenUser(context={"conference_id": conference.id})


def scope_query(principal: Principal, query: ConferenceQuery) -> ConferenceQuery:
    """Narrow a non-approved listing to the requesting user's own proposals.

    Asking for another host's non-approved conferences is refused rather
    than silently narrowed.
    """
    if query.status == ConferenceStatus.APPROVED or not is_restricted(principal):
        return query
    if query.host_id is None:
        return query.model_copy(update={"host_id": principal.id})
    if query.host_id != principal.id:
        raise ForbiddenUser(details={"host_id": query.host_id})
    return query
