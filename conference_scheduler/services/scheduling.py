"""Conference scheduling service.

Orchestrates proposal creation, content updates, status transitions,
deletion and listing. The lifecycle rules, conflict detection, visibility
filter and pagination each live in their own module; this service decides
the order in which they run and turns store signals into application
errors.

The requesting principal is always passed in explicitly.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.errors import (
    ConferenceNotFound,
    ForbiddenRole,
    ForbiddenUser,
    TimeWindowConflict,
    UserHasActiveProposal,
    internal_error,
)
from conference_scheduler.domain.events import (
    ConferenceDeleted,
    ConferenceProposed,
    ConferenceStatusChanged,
    ConferenceUpdated,
)
from conference_scheduler.domain.models import (
    Conference,
    ConferenceQuery,
    ConferenceResponse,
    ConferenceStatus,
    ConferenceUpdate,
    CreateConferenceRequest,
    OrderBy,
    PageInfo,
    Principal,
    SortOrder,
    TimelineEntry,
    utcnow,
)
from conference_scheduler.repos.memory import (
    ConferenceRepository,
    OverlapViolation,
    RecordNotFound,
    RegistrationRepository,
    TimelineRepository,
)
from conference_scheduler.services import lifecycle
from conference_scheduler.services.conflicts import (
    CONFLICT_REPORT_LIMIT,
    ConflictDetector,
    conflict_details,
)
from conference_scheduler.services.ids import IdGenerator, new_sortable_id
from conference_scheduler.services.pagination import MAX_LIMIT, validate_page
from conference_scheduler.services.visibility import ensure_can_view, is_restricted, scope_query

logger = logging.getLogger(__name__)


class SchedulingService:
    def __init__(
        self,
        conference_repo: ConferenceRepository,
        registration_repo: RegistrationRepository,
        bus: EventBus,
        timeline_repo: TimelineRepository | None = None,
        id_generator: IdGenerator = new_sortable_id,
        clock: Callable[[], datetime] = utcnow,
        page_limit_max: int = MAX_LIMIT,
        conflict_report_limit: int = CONFLICT_REPORT_LIMIT,
    ) -> None:
        self.conference_repo = conference_repo
        self.registration_repo = registration_repo
        self.bus = bus
        self.timeline_repo = timeline_repo or TimelineRepository()
        self.id_generator = id_generator
        self.clock = clock
        self.page_limit_max = page_limit_max
        self.detector = ConflictDetector(conference_repo, report_limit=conflict_report_limit)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, conference_id: str) -> Conference:
        conference = self.conference_repo.get(conference_id)
        if conference is None:
            raise ConferenceNotFound(context={"conference_id": conference_id})
        return conference

    def _to_response(self, conference: Conference) -> ConferenceResponse:
        taken = self.registration_repo.count_by_conference(conference.id)
        return ConferenceResponse.from_entity(conference, seats_taken=taken)

    def get_visible_conference(self, principal: Principal, conference_id: str) -> Conference:
        """Load a live conference and apply the visibility rules for *principal*."""
        conference = self._load(conference_id)
        ensure_can_view(principal, conference)
        return conference

    def get_conference(self, principal: Principal, conference_id: str) -> ConferenceResponse:
        return self._to_response(self.get_visible_conference(principal, conference_id))

    def list_conferences(
        self, principal: Principal, query: ConferenceQuery
    ) -> tuple[list[ConferenceResponse], PageInfo]:
        validate_page(query, self.page_limit_max)
        scoped = scope_query(principal, query)
        conferences, page_info = self.conference_repo.list(scoped, now=self.clock())
        return [self._to_response(c) for c in conferences], page_info

    def get_timeline(self, principal: Principal, conference_id: str) -> list[TimelineEntry]:
        """Activity of a conference, for its host or a coordinator.

        Soft-deleted conferences keep their timeline readable so the
        deletion entry itself can be seen.
        """
        conference = self.conference_repo.raw(conference_id)
        if conference is None:
            raise ConferenceNotFound(context={"conference_id": conference_id})
        if is_restricted(principal) and conference.host_id != principal.id:
            raise ForbiddenUser(context={"conference_id": conference_id})
        return self.timeline_repo.list_for_conference(conference_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_proposal(self, principal: Principal, request: CreateConferenceRequest) -> str:
        """Create a pending conference hosted by *principal* and return its id."""
        if principal.id is None:
            raise internal_error(logger, "Proposal requested without a user id")
        now = self.clock()

        lifecycle.validate_window(request.starts_at, request.ends_at, now)

        active, _ = self.conference_repo.list(
            ConferenceQuery(
                status=ConferenceStatus.PENDING,
                host_id=principal.id,
                limit=1,
                include_past=False,
                order_by=OrderBy.CREATED_AT,
                order=SortOrder.DESC,
            ),
            now=now,
        )
        if active:
            existing = active[0]
            raise UserHasActiveProposal(
                details={
                    "conference": {
                        "id": existing.id,
                        "title": existing.title,
                        "status": existing.status.value,
                        "created_at": existing.created_at.isoformat(),
                    }
                }
            )

        self.detector.ensure_free(request.starts_at, request.ends_at)

        try:
            conference_id = self.id_generator()
        except Exception as exc:
            raise internal_error(
                logger, "Failed to generate conference id", exc, requester_id=principal.id
            ) from exc

        conference = Conference(
            id=conference_id,
            **request.model_dump(),
            host_id=principal.id,
            status=ConferenceStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.conference_repo.add(conference)

        logger.info(
            "Conference proposal %s created by %s for %s - %s",
            conference_id,
            principal.id,
            conference.starts_at.isoformat(),
            conference.ends_at.isoformat(),
        )
        self.bus.publish(
            ConferenceProposed(conference_id=conference_id, actor_id=principal.id, occurred_at=now)
        )
        return conference_id

    def update_conference(
        self, principal: Principal, conference_id: str, update: ConferenceUpdate
    ) -> ConferenceResponse:
        now = self.clock()
        original = self._load(conference_id)
        if original.host_id != principal.id:
            raise ForbiddenUser(context={"conference_id": conference_id})

        updated = update.apply_to(original)
        lifecycle.check_content_update(
            original, updated, update.changes_time_window, now
        )
        if update.changes_time_window:
            self.detector.ensure_free(updated.starts_at, updated.ends_at, exclude_id=conference_id)

        stored = self._persist(updated, now)

        changed = sorted(update.model_fields_set)
        logger.info("Conference %s updated by %s: %s", conference_id, principal.id, changed)
        self.bus.publish(
            ConferenceUpdated(
                conference_id=conference_id,
                actor_id=principal.id,
                changed_fields=changed,
                occurred_at=now,
            )
        )
        return self._to_response(stored)

    def update_status(
        self, principal: Principal, conference_id: str, status: ConferenceStatus
    ) -> ConferenceResponse:
        if is_restricted(principal):
            raise ForbiddenRole(details={"role": principal.role})

        conference = self._load(conference_id)
        previous = conference.status
        now = self.clock()
        lifecycle.check_transition(conference, status, now)

        if status == ConferenceStatus.APPROVED:
            self.detector.ensure_free(
                conference.starts_at, conference.ends_at, exclude_id=conference_id
            )

        stored = self._persist(conference.model_copy(update={"status": status}), now)

        logger.info(
            "Conference %s status changed %s -> %s by %s",
            conference_id,
            previous,
            status,
            principal.id,
        )
        self.bus.publish(
            ConferenceStatusChanged(
                conference_id=conference_id,
                actor_id=principal.id,
                previous=previous,
                status=status,
                occurred_at=now,
            )
        )
        return self._to_response(stored)

    def delete_conference(self, principal: Principal, conference_id: str) -> None:
        conference = self._load(conference_id)
        if is_restricted(principal) and conference.host_id != principal.id:
            raise ForbiddenUser(context={"conference_id": conference_id})

        now = self.clock()
        try:
            self.conference_repo.delete(conference_id, now)
        except RecordNotFound as exc:
            raise ConferenceNotFound(context={"conference_id": conference_id}) from exc

        logger.info("Conference %s deleted by %s", conference_id, principal.id)
        self.bus.publish(
            ConferenceDeleted(conference_id=conference_id, actor_id=principal.id, occurred_at=now)
        )

    def _persist(self, conference: Conference, now: datetime) -> Conference:
        """Write *conference*; the store's overlap constraint has the final word."""
        try:
            return self.conference_repo.update(conference, now)
        except RecordNotFound as exc:
            raise ConferenceNotFound(context={"conference_id": conference.id}) from exc
        except OverlapViolation as exc:
            logger.warning(
                "Conference %s lost a scheduling race against %s",
                conference.id,
                [c.id for c in exc.conflicts],
            )
            raise TimeWindowConflict(details=conflict_details(exc.conflicts)) from exc
