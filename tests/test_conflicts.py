"""Tests for conflict detection between conference time windows."""

from datetime import datetime, timedelta, timezone

import pytest

from conference_scheduler.domain.errors import TimeWindowConflict
from conference_scheduler.domain.models import Conference, ConferenceStatus
from conference_scheduler.services.conflicts import ConflictDetector, find_conflicts


def _make_conference(
    start: datetime, end: datetime, title: str = "Existing", conference_id: str = "c-1"
) -> Conference:
    return Conference(
        id=conference_id,
        title=title,
        description="desc",
        speaker_name="Speaker",
        speaker_title="Title",
        target_audience="Everyone",
        seats=5,
        starts_at=start,
        ends_at=end,
        host_id="host",
    )


def test_no_overlap():
    """Conferences that don't overlap should not be returned as conflicts."""
    existing = [
        _make_conference(
            datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
        ),
    ]
    conflicts = find_conflicts(
        new_start=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        new_end=datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc),
        existing=existing,
    )
    assert conflicts == []


def test_partial_overlap():
    """A conference that partially overlaps should be returned as a conflict."""
    existing = [
        _make_conference(
            datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 1, 10, 30, tzinfo=timezone.utc),
        ),
    ]
    conflicts = find_conflicts(
        new_start=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        new_end=datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc),
        existing=existing,
    )
    assert len(conflicts) == 1
    assert conflicts[0].starts_at == datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_exact_boundary_no_conflict():
    """When existing.ends_at == new_start, there is no conflict (boundary touch)."""
    existing = [
        _make_conference(
            datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        ),
    ]
    conflicts = find_conflicts(
        new_start=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        new_end=datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc),
        existing=existing,
    )
    assert conflicts == []


def test_containment_is_a_conflict():
    """A window fully inside an existing conference conflicts with it."""
    existing = [
        _make_conference(
            datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
            datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc),
        ),
    ]
    conflicts = find_conflicts(
        new_start=datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc),
        new_end=datetime(2025, 1, 1, 11, 0, tzinfo=timezone.utc),
        existing=existing,
    )
    assert len(conflicts) == 1


# ---------------------------------------------------------------------------
# Detector against the store
# ---------------------------------------------------------------------------


def test_detector_only_considers_approved(env):
    """Pending proposals never block a time window."""
    env.propose()
    starts_at = env.clock() + timedelta(hours=1)

    detector = ConflictDetector(env.conference_repo)
    assert detector.find(starts_at, starts_at + timedelta(hours=1)) == []


def test_detector_excludes_given_id(env):
    conference_id = env.approved()
    starts_at = env.clock() + timedelta(hours=1)

    detector = ConflictDetector(env.conference_repo)
    assert [c.id for c in detector.find(starts_at, starts_at + timedelta(hours=1))] == [
        conference_id
    ]
    assert detector.find(starts_at, starts_at + timedelta(hours=1), exclude_id=conference_id) == []


def test_detector_ignores_soft_deleted(env):
    conference_id = env.approved()
    env.scheduling.delete_conference(env.coordinator, conference_id)
    starts_at = env.clock() + timedelta(hours=1)

    detector = ConflictDetector(env.conference_repo)
    assert detector.find(starts_at, starts_at + timedelta(hours=1)) == []


def test_detector_caps_report_and_orders_by_start(env):
    """At most report_limit conflicts come back, earliest first."""
    ids = [
        env.approved(start=timedelta(hours=1 + i), duration=timedelta(hours=1))
        for i in range(12)
    ]
    window_start = env.clock()
    window_end = env.clock() + timedelta(days=1)

    found = ConflictDetector(env.conference_repo).find(window_start, window_end)
    assert [c.id for c in found] == ids[:10]


def test_ensure_free_reports_conflicting_sessions(env):
    conference_id = env.approved(title="Keynote")
    starts_at = env.clock() + timedelta(hours=1, minutes=30)

    with pytest.raises(TimeWindowConflict) as excinfo:
        ConflictDetector(env.conference_repo).ensure_free(starts_at, starts_at + timedelta(hours=1))

    reported = excinfo.value.details["conferences"]
    assert [c["id"] for c in reported] == [conference_id]
    assert reported[0]["title"] == "Keynote"


def test_rejected_conferences_never_conflict(env):
    conference_id = env.propose()
    env.scheduling.update_status(env.coordinator, conference_id, ConferenceStatus.REJECTED)
    starts_at = env.clock() + timedelta(hours=1)

    assert ConflictDetector(env.conference_repo).find(starts_at, starts_at + timedelta(hours=1)) == []
