"""Tests for the conference state machine and the content-edit rules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conference_scheduler.domain.errors import (
    EndTimeBeforeStart,
    InvalidStatusTransition,
    TimeAlreadyPassed,
    UpdateApprovedTimeWindow,
    UpdatePastConference,
    UpdatePastConferenceStatus,
    UpdateRejectedConference,
)
from conference_scheduler.domain.models import Conference, ConferenceStatus, ConferenceUpdate
from conference_scheduler.services import lifecycle

_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _conference(
    status: ConferenceStatus = ConferenceStatus.PENDING,
    start: timedelta = timedelta(hours=1),
    duration: timedelta = timedelta(hours=1),
) -> Conference:
    return Conference(
        id="c-1",
        title="Lifecycle",
        description="desc",
        speaker_name="Speaker",
        speaker_title="Title",
        target_audience="Everyone",
        seats=5,
        starts_at=_NOW + start,
        ends_at=_NOW + start + duration,
        host_id="host",
        status=status,
    )


def _edit(conference: Conference, **changes) -> tuple[Conference, bool]:
    update = ConferenceUpdate(**changes)
    return update.apply_to(conference), update.changes_time_window


# ---------------------------------------------------------------------------
# Window validation
# ---------------------------------------------------------------------------


def test_window_in_the_past_rejected():
    with pytest.raises(TimeAlreadyPassed):
        lifecycle.validate_window(_NOW - timedelta(minutes=1), _NOW + timedelta(hours=1), _NOW)


def test_window_starting_now_accepted():
    lifecycle.validate_window(_NOW, _NOW + timedelta(hours=1), _NOW)


@pytest.mark.parametrize("duration", [timedelta(0), timedelta(hours=-1)])
def test_window_must_end_after_start(duration):
    starts_at = _NOW + timedelta(hours=1)
    with pytest.raises(EndTimeBeforeStart):
        lifecycle.validate_window(starts_at, starts_at + duration, _NOW)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("target", [ConferenceStatus.APPROVED, ConferenceStatus.REJECTED])
def test_pending_can_be_decided(target):
    lifecycle.check_transition(_conference(), target, _NOW)


@pytest.mark.parametrize(
    "current,target",
    [
        (ConferenceStatus.REJECTED, ConferenceStatus.APPROVED),
        (ConferenceStatus.APPROVED, ConferenceStatus.REJECTED),
        (ConferenceStatus.APPROVED, ConferenceStatus.PENDING),
        (ConferenceStatus.REJECTED, ConferenceStatus.PENDING),
        (ConferenceStatus.PENDING, ConferenceStatus.PENDING),
        (ConferenceStatus.APPROVED, ConferenceStatus.APPROVED),
    ],
)
def test_decided_conferences_are_final(current, target):
    with pytest.raises(InvalidStatusTransition) as excinfo:
        lifecycle.check_transition(_conference(status=current), target, _NOW)
    assert excinfo.value.details == {"from": current.value, "to": target.value}


def test_started_conference_cannot_be_approved():
    started = _conference(start=timedelta(hours=-1), duration=timedelta(hours=3))
    with pytest.raises(UpdatePastConferenceStatus):
        lifecycle.check_transition(started, ConferenceStatus.APPROVED, _NOW)


def test_started_conference_can_still_be_rejected():
    started = _conference(start=timedelta(hours=-1), duration=timedelta(hours=3))
    lifecycle.check_transition(started, ConferenceStatus.REJECTED, _NOW)


# ---------------------------------------------------------------------------
# Content edits
# ---------------------------------------------------------------------------


def test_pending_window_can_move():
    original = _conference()
    updated, moves = _edit(original, starts_at=_NOW + timedelta(hours=5), ends_at=_NOW + timedelta(hours=6))
    lifecycle.check_content_update(original, updated, moves, _NOW)


def test_approved_content_edit_allowed():
    original = _conference(status=ConferenceStatus.APPROVED)
    updated, moves = _edit(original, title="New title")
    assert moves is False
    lifecycle.check_content_update(original, updated, moves, _NOW)


def test_approved_window_is_frozen():
    original = _conference(status=ConferenceStatus.APPROVED)
    updated, moves = _edit(original, ends_at=original.ends_at + timedelta(minutes=30))
    with pytest.raises(UpdateApprovedTimeWindow):
        lifecycle.check_content_update(original, updated, moves, _NOW)


def test_rejected_conference_is_read_only():
    original = _conference(status=ConferenceStatus.REJECTED)
    updated, moves = _edit(original, title="Another try")
    with pytest.raises(UpdateRejectedConference):
        lifecycle.check_content_update(original, updated, moves, _NOW)


def test_ended_conference_is_read_only():
    """The ended check runs first, even for a rejected conference."""
    original = _conference(status=ConferenceStatus.REJECTED, start=timedelta(hours=-3))
    updated, moves = _edit(original, title="Too late")
    with pytest.raises(UpdatePastConference):
        lifecycle.check_content_update(original, updated, moves, _NOW)


def test_conference_ending_exactly_now_counts_as_ended():
    original = _conference(start=timedelta(hours=-1), duration=timedelta(hours=1))
    updated, moves = _edit(original, title="Borderline")
    with pytest.raises(UpdatePastConference):
        lifecycle.check_content_update(original, updated, moves, _NOW)


def test_moving_only_start_past_end_rejected():
    original = _conference()
    updated, moves = _edit(original, starts_at=original.ends_at + timedelta(minutes=10))
    with pytest.raises(EndTimeBeforeStart):
        lifecycle.check_content_update(original, updated, moves, _NOW)


def test_moving_window_into_the_past_rejected():
    original = _conference()
    updated, moves = _edit(original, starts_at=_NOW - timedelta(minutes=5))
    with pytest.raises(TimeAlreadyPassed):
        lifecycle.check_content_update(original, updated, moves, _NOW)


# ---------------------------------------------------------------------------
# Partial update model
# ---------------------------------------------------------------------------


def test_update_applies_only_sent_fields():
    original = _conference().model_copy(update={"prerequisites": "Python basics"})
    updated, moves = _edit(original, title="Renamed")
    assert updated.title == "Renamed"
    assert updated.prerequisites == "Python basics"
    assert moves is False


def test_prerequisites_can_be_cleared():
    original = _conference().model_copy(update={"prerequisites": "Python basics"})
    updated, _ = _edit(original, prerequisites=None)
    assert updated.prerequisites is None


@pytest.mark.parametrize("field", ["title", "speaker_name", "starts_at", "ends_at"])
def test_required_fields_cannot_be_nulled(field):
    with pytest.raises(ValidationError):
        ConferenceUpdate(**{field: None})
