"""Detection of scheduling conflicts between conferences."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from conference_scheduler.domain.errors import TimeWindowConflict
from conference_scheduler.domain.models import Conference, ConflictingConference

if TYPE_CHECKING:
    from conference_scheduler.repos.memory import ConferenceRepository

CONFLICT_REPORT_LIMIT = 10


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing: Iterable[Conference],
) -> list[Conference]:
    """Return the conferences of *existing* that overlap the given window.

    Overlap rule: conflict if new_start < existing.ends_at AND existing.starts_at < new_end.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return [c for c in existing if c.overlaps(new_start, new_end)]


def conflict_details(conflicts: Iterable[Conference]) -> dict:
    return {
        "conferences": [
            ConflictingConference.from_entity(c).model_dump(mode="json") for c in conflicts
        ]
    }


class ConflictDetector:
    """Checks a time window against the approved, live conferences in the store."""

    def __init__(self, conference_repo: ConferenceRepository, report_limit: int = CONFLICT_REPORT_LIMIT) -> None:
        self.conference_repo = conference_repo
        self.report_limit = report_limit

    def find(
        self, starts_at: datetime, ends_at: datetime, exclude_id: str | None = None
    ) -> list[Conference]:
        return self.conference_repo.list_conflicting(
            starts_at, ends_at, exclude_id, limit=self.report_limit
        )

    def ensure_free(
        self, starts_at: datetime, ends_at: datetime, exclude_id: str | None = None
    ) -> None:
        """Raise ``TimeWindowConflict`` listing the blocking conferences, if any."""
        conflicts = self.find(starts_at, ends_at, exclude_id)
        if conflicts:
            raise TimeWindowConflict(details=conflict_details(conflicts))
