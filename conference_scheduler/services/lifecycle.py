"""Conference lifecycle: which status transitions and content edits are allowed.

    pending ──▶ approved
       │
       └─────▶ rejected

Only ``pending`` conferences can change status. A pending conference whose
start time has passed can still be rejected but no longer approved.
Content edits are limited to conferences that have not ended and are not
rejected; the time window can only move while the conference is pending.
"""

from __future__ import annotations

from datetime import datetime

from conference_scheduler.domain.errors import (
    EndTimeBeforeStart,
    InvalidStatusTransition,
    TimeAlreadyPassed,
    UpdateApprovedTimeWindow,
    UpdatePastConference,
    UpdatePastConferenceStatus,
    UpdateRejectedConference,
)
from conference_scheduler.domain.models import Conference, ConferenceStatus

ALLOWED_TRANSITIONS: dict[ConferenceStatus, frozenset[ConferenceStatus]] = {
    ConferenceStatus.PENDING: frozenset({ConferenceStatus.APPROVED, ConferenceStatus.REJECTED}),
    ConferenceStatus.APPROVED: frozenset(),
    ConferenceStatus.REJECTED: frozenset(),
}


def validate_window(starts_at: datetime, ends_at: datetime, now: datetime) -> None:
    """A new or moved window must start in the future and end after it starts."""
    if starts_at < now:
        raise TimeAlreadyPassed(details={"starts_at": starts_at.isoformat()})
    if ends_at <= starts_at:
        raise EndTimeBeforeStart(
            details={"starts_at": starts_at.isoformat(), "ends_at": ends_at.isoformat()}
        )


def check_transition(conference: Conference, target: ConferenceStatus, now: datetime) -> None:
    """Raise unless *conference* may move to *target* at *now*.

    Conflict detection for approvals is the caller's job; this only
    covers the state machine itself.
    """
    if target not in ALLOWED_TRANSITIONS[conference.status]:
        raise InvalidStatusTransition(
            details={"from": conference.status.value, "to": target.value}
        )
    if target == ConferenceStatus.APPROVED and conference.starts_at < now:
        raise UpdatePastConferenceStatus(details={"starts_at": conference.starts_at.isoformat()})


def check_content_update(
    original: Conference, updated: Conference, changes_time_window: bool, now: datetime
) -> None:
    """Raise unless the host may turn *original* into *updated* at *now*."""
    if original.ends_at <= now:
        raise UpdatePastConference()
    if original.status == ConferenceStatus.REJECTED:
        raise UpdateRejectedConference()
    if not changes_time_window:
        return
    if original.status == ConferenceStatus.APPROVED:
        raise UpdateApprovedTimeWindow()
    validate_window(updated.starts_at, updated.ends_at, now)
