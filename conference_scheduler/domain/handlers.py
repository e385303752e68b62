"""Event handlers that record conference activity on the timeline."""

from __future__ import annotations

import logging

from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.events import (
    ConferenceDeleted,
    ConferenceProposed,
    ConferenceStatusChanged,
    ConferenceUpdated,
    FeedbackCreated,
    RegistrationCreated,
)
from conference_scheduler.domain.models import (
    ConferenceStatus,
    TimelineEntry,
    TimelineEntryType,
)
from conference_scheduler.repos.memory import TimelineRepository

logger = logging.getLogger(__name__)

_STATUS_ENTRY_TYPES = {
    ConferenceStatus.APPROVED: TimelineEntryType.APPROVED,
    ConferenceStatus.REJECTED: TimelineEntryType.REJECTED,
}


class HandlerRegistry:
    """Records every conference mutation on the conference's activity timeline."""

    def __init__(self, bus: EventBus, timeline_repo: TimelineRepository) -> None:
        self.bus = bus
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ConferenceProposed, self.on_conference_proposed)
        self.bus.subscribe(ConferenceUpdated, self.on_conference_updated)
        self.bus.subscribe(ConferenceStatusChanged, self.on_status_changed)
        self.bus.subscribe(ConferenceDeleted, self.on_conference_deleted)
        self.bus.subscribe(RegistrationCreated, self.on_registration_created)
        self.bus.subscribe(FeedbackCreated, self.on_feedback_created)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_conference_proposed(self, event: ConferenceProposed) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=TimelineEntryType.PROPOSED,
                actor_id=event.actor_id,
                timestamp=event.occurred_at,
            )
        )

    def on_conference_updated(self, event: ConferenceUpdated) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=TimelineEntryType.UPDATED,
                actor_id=event.actor_id,
                timestamp=event.occurred_at,
                payload={"changed_fields": event.changed_fields},
            )
        )

    def on_status_changed(self, event: ConferenceStatusChanged) -> None:
        entry_type = _STATUS_ENTRY_TYPES.get(event.status)
        if entry_type is None:
            logger.warning(
                "Ignoring unexpected status change of %s to %s", event.conference_id, event.status
            )
            return
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=entry_type,
                actor_id=event.actor_id,
                timestamp=event.occurred_at,
                payload={"from": event.previous.value, "to": event.status.value},
            )
        )

    def on_conference_deleted(self, event: ConferenceDeleted) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=TimelineEntryType.DELETED,
                actor_id=event.actor_id,
                timestamp=event.occurred_at,
            )
        )

    def on_registration_created(self, event: RegistrationCreated) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=TimelineEntryType.REGISTERED,
                actor_id=event.user_id,
                timestamp=event.occurred_at,
            )
        )

    def on_feedback_created(self, event: FeedbackCreated) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                conference_id=event.conference_id,
                type=TimelineEntryType.FEEDBACK_GIVEN,
                actor_id=event.user_id,
                timestamp=event.occurred_at,
                payload={"feedback_id": event.feedback_id},
            )
        )
