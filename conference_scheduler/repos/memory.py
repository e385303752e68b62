"""In-memory repositories for conferences, registrations, feedback and timelines.

Rows are stored as copies so a caller only changes the store through an
explicit ``add``/``update``. Conference and registration rows share one
re-entrant lock: every read and write takes it, and writes re-validate the
scheduling invariants inside it. A violation raised here is the
authoritative conflict signal; the service pre-checks only exist to build a
friendly diagnostic.

Timestamps (``updated_at``, ``deleted_at``) are supplied by the caller so
they follow the service clock.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable

from conference_scheduler.domain.models import (
    Conference,
    ConferenceQuery,
    ConferenceStatus,
    Feedback,
    OrderBy,
    PageInfo,
    PageRequest,
    Registration,
    SortOrder,
    TimelineEntry,
)
from conference_scheduler.services.conflicts import CONFLICT_REPORT_LIMIT, find_conflicts
from conference_scheduler.services.pagination import paginate


class RecordNotFound(LookupError):
    """No live row matched."""


class ConstraintViolation(Exception):
    """A write would break a store-level invariant."""


class OverlapViolation(ConstraintViolation):
    def __init__(self, conflicts: list[Conference]) -> None:
        super().__init__(f"time window overlaps {len(conflicts)} conference(s)")
        self.conflicts = conflicts


class CapacityViolation(ConstraintViolation):
    pass


class DuplicateRegistration(ConstraintViolation):
    pass


class DuplicateFeedback(ConstraintViolation):
    pass


def _id_key(conference: Conference) -> tuple:
    return (conference.id,)


def _starts_at_key(conference: Conference) -> tuple:
    return (conference.starts_at, conference.id)


_SORT_KEYS: dict[OrderBy, Callable[[Conference], tuple]] = {
    OrderBy.CREATED_AT: _id_key,
    OrderBy.STARTS_AT: _starts_at_key,
}


class ConferenceRepository:
    """Dict-backed store for Conference rows, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Conference] = {}
        self.lock = threading.RLock()

    def _live(self) -> list[Conference]:
        # Callers hold self.lock.
        return [c for c in self._store.values() if c.deleted_at is None]

    def _check_overlap(self, conference: Conference) -> None:
        if conference.status != ConferenceStatus.APPROVED:
            return
        others = [
            c
            for c in self._live()
            if c.id != conference.id and c.status == ConferenceStatus.APPROVED
        ]
        conflicts = find_conflicts(conference.starts_at, conference.ends_at, others)
        if conflicts:
            raise OverlapViolation(conflicts)

    def add(self, conference: Conference) -> None:
        with self.lock:
            self._check_overlap(conference)
            self._store[conference.id] = conference.model_copy()

    def get(self, conference_id: str) -> Conference | None:
        with self.lock:
            conference = self._store.get(conference_id)
            if conference is None or conference.deleted_at is not None:
                return None
            return conference.model_copy()

    def update(self, conference: Conference, now: datetime) -> Conference:
        with self.lock:
            current = self._store.get(conference.id)
            if current is None or current.deleted_at is not None:
                raise RecordNotFound(conference.id)
            self._check_overlap(conference)
            stored = conference.model_copy(update={"updated_at": now})
            self._store[conference.id] = stored
            return stored.model_copy()

    def delete(self, conference_id: str, now: datetime) -> None:
        """Soft delete: the row stays but only ``raw`` still returns it."""
        with self.lock:
            current = self._store.get(conference_id)
            if current is None or current.deleted_at is not None:
                raise RecordNotFound(conference_id)
            self._store[conference_id] = current.model_copy(
                update={"deleted_at": now, "updated_at": now}
            )

    def list_conflicting(
        self,
        starts_at: datetime,
        ends_at: datetime,
        exclude_id: str | None = None,
        limit: int = CONFLICT_REPORT_LIMIT,
    ) -> list[Conference]:
        """Approved, live conferences overlapping the window, earliest first."""
        with self.lock:
            approved = [
                c
                for c in self._live()
                if c.status == ConferenceStatus.APPROVED and c.id != exclude_id
            ]
            conflicts = find_conflicts(starts_at, ends_at, approved)
            conflicts.sort(key=_starts_at_key)
            return [c.model_copy() for c in conflicts[:limit]]

    def list(self, query: ConferenceQuery, now: datetime) -> tuple[list[Conference], PageInfo]:
        sort_key = _SORT_KEYS[query.order_by]

        def cursor_key(cursor_id: str) -> tuple | None:
            if query.order_by == OrderBy.CREATED_AT:
                return (cursor_id,)
            # The cursor row is re-read even if it has since been deleted.
            cursor = self._store.get(cursor_id)
            return None if cursor is None else sort_key(cursor)

        with self.lock:
            rows = [c for c in self._live() if c.status == query.status]
            if not query.include_past:
                rows = [c for c in rows if c.ends_at > now]
            if query.title:
                needle = query.title.casefold()
                rows = [c for c in rows if needle in c.title.casefold()]
            if query.host_id is not None:
                rows = [c for c in rows if c.host_id == query.host_id]
            if query.starts_before is not None:
                rows = [c for c in rows if c.starts_at < query.starts_before]
            if query.starts_after is not None:
                rows = [c for c in rows if c.starts_at > query.starts_after]

            page, info = paginate(
                rows,
                sort_key=sort_key,
                row_id=lambda c: c.id,
                cursor_key=cursor_key,
                after_id=query.after_id,
                before_id=query.before_id,
                limit=query.limit,
                descending=query.order == SortOrder.DESC,
            )
            return [c.model_copy() for c in page], info

    def raw(self, conference_id: str) -> Conference | None:
        """Return the row even if soft-deleted."""
        with self.lock:
            conference = self._store.get(conference_id)
            return None if conference is None else conference.model_copy()


class RegistrationRepository:
    """Dict-backed store for Registration rows, keyed by (conference_id, user_id).

    Shares the conference repository's lock, so a registration check and
    its write see one consistent view of both stores.
    """

    def __init__(self, conference_repo: ConferenceRepository) -> None:
        self._store: dict[tuple[str, str], Registration] = {}
        self.conference_repo = conference_repo
        self.lock = conference_repo.lock

    def add(self, registration: Registration) -> None:
        with self.lock:
            conference = self.conference_repo.get(registration.conference_id)
            if conference is None:
                raise RecordNotFound(registration.conference_id)
            if self.exists(registration.conference_id, registration.user_id):
                raise DuplicateRegistration(registration.conference_id)
            if self.count_by_conference(registration.conference_id) >= conference.seats:
                raise CapacityViolation(registration.conference_id)
            conflicts = self.list_conflicting(
                registration.user_id, conference.starts_at, conference.ends_at
            )
            if conflicts:
                raise OverlapViolation(conflicts)
            self._store[(registration.conference_id, registration.user_id)] = (
                registration.model_copy()
            )

    def exists(self, conference_id: str, user_id: str) -> bool:
        with self.lock:
            return (conference_id, user_id) in self._store

    def count_by_conference(self, conference_id: str) -> int:
        with self.lock:
            return sum(1 for key in self._store if key[0] == conference_id)

    def _conferences_of(self, user_id: str) -> list[Conference]:
        # Callers hold self.lock.
        conferences = []
        for conference_id, registered_user in self._store:
            if registered_user != user_id:
                continue
            conference = self.conference_repo.get(conference_id)
            if conference is not None:
                conferences.append(conference)
        return conferences

    def list_conflicting(
        self, user_id: str, starts_at: datetime, ends_at: datetime
    ) -> list[Conference]:
        """Live conferences the user holds a seat in that overlap the window."""
        with self.lock:
            conflicts = find_conflicts(starts_at, ends_at, self._conferences_of(user_id))
        conflicts.sort(key=_starts_at_key)
        return conflicts

    def list_users_by_conference(
        self, conference_id: str, page: PageRequest
    ) -> tuple[list[Registration], PageInfo]:
        with self.lock:
            rows = [r.model_copy() for key, r in self._store.items() if key[0] == conference_id]
        return paginate(
            rows,
            sort_key=lambda r: (r.user_id,),
            row_id=lambda r: r.user_id,
            cursor_key=lambda cursor_id: (cursor_id,),
            after_id=page.after_id,
            before_id=page.before_id,
            limit=page.limit,
        )

    def list_conferences_by_user(
        self, user_id: str, include_past: bool, page: PageRequest, now: datetime
    ) -> tuple[list[Conference], PageInfo]:
        def cursor_key(cursor_id: str) -> tuple | None:
            cursor = self.conference_repo.raw(cursor_id)
            return None if cursor is None else _starts_at_key(cursor)

        with self.lock:
            rows = self._conferences_of(user_id)
            if not include_past:
                rows = [c for c in rows if c.ends_at > now]
            return paginate(
                rows,
                sort_key=_starts_at_key,
                row_id=lambda c: c.id,
                cursor_key=cursor_key,
                after_id=page.after_id,
                before_id=page.before_id,
                limit=page.limit,
            )


class FeedbackRepository:
    """Dict-backed store for Feedback rows, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Feedback] = {}
        self.lock = threading.RLock()

    def add(self, feedback: Feedback) -> None:
        with self.lock:
            if self.exists(feedback.conference_id, feedback.user_id):
                raise DuplicateFeedback(feedback.conference_id)
            self._store[feedback.id] = feedback.model_copy()

    def get(self, feedback_id: str) -> Feedback | None:
        with self.lock:
            feedback = self._store.get(feedback_id)
            if feedback is None or feedback.deleted_at is not None:
                return None
            return feedback.model_copy()

    def exists(self, conference_id: str, user_id: str) -> bool:
        with self.lock:
            return any(
                f.conference_id == conference_id and f.user_id == user_id and f.deleted_at is None
                for f in self._store.values()
            )

    def list_by_conference(
        self, conference_id: str, page: PageRequest
    ) -> tuple[list[Feedback], PageInfo]:
        with self.lock:
            rows = [
                f.model_copy()
                for f in self._store.values()
                if f.conference_id == conference_id and f.deleted_at is None
            ]
        return paginate(
            rows,
            sort_key=lambda f: (f.id,),
            row_id=lambda f: f.id,
            cursor_key=lambda cursor_id: (cursor_id,),
            after_id=page.after_id,
            before_id=page.before_id,
            limit=page.limit,
        )

    def delete(self, feedback_id: str, now: datetime) -> None:
        with self.lock:
            current = self._store.get(feedback_id)
            if current is None or current.deleted_at is not None:
                raise RecordNotFound(feedback_id)
            self._store[feedback_id] = current.model_copy(update={"deleted_at": now})


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []
        self.lock = threading.Lock()

    def add(self, entry: TimelineEntry) -> None:
        with self.lock:
            self._entries.append(entry)

    def list_for_conference(self, conference_id: str) -> list[TimelineEntry]:
        with self.lock:
            entries = [e for e in self._entries if e.conference_id == conference_id]
        return sorted(entries, key=lambda e: e.timestamp)
