"""Feedback service: attendees comment on conferences once they have ended."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.errors import (
    ConferenceNotEnded,
    FeedbackAlreadyGiven,
    FeedbackNotFound,
    ForbiddenRole,
    HostCannotGiveFeedback,
    NotRegistered,
    internal_error,
)
from conference_scheduler.domain.events import FeedbackCreated
from conference_scheduler.domain.models import (
    Feedback,
    FeedbackResponse,
    PageInfo,
    PageRequest,
    Principal,
    utcnow,
)
from conference_scheduler.repos.memory import (
    DuplicateFeedback,
    FeedbackRepository,
    RecordNotFound,
    RegistrationRepository,
)
from conference_scheduler.services.ids import IdGenerator, new_sortable_id
from conference_scheduler.services.pagination import MAX_LIMIT, validate_page
from conference_scheduler.services.scheduling import SchedulingService
from conference_scheduler.services.visibility import is_restricted

logger = logging.getLogger(__name__)


class FeedbackService:
    def __init__(
        self,
        feedback_repo: FeedbackRepository,
        registration_repo: RegistrationRepository,
        scheduling: SchedulingService,
        bus: EventBus,
        id_generator: IdGenerator = new_sortable_id,
        clock: Callable[[], datetime] = utcnow,
        page_limit_max: int = MAX_LIMIT,
    ) -> None:
        self.feedback_repo = feedback_repo
        self.registration_repo = registration_repo
        self.scheduling = scheduling
        self.bus = bus
        self.id_generator = id_generator
        self.clock = clock
        self.page_limit_max = page_limit_max

    def create_feedback(self, principal: Principal, conference_id: str, comment: str) -> str:
        if not self.registration_repo.exists(conference_id, principal.id):
            raise NotRegistered()

        conference = self.scheduling.get_visible_conference(principal, conference_id)

        if conference.host_id == principal.id:
            raise HostCannotGiveFeedback()

        now = self.clock()
        if conference.ends_at > now:
            raise ConferenceNotEnded(details={"ends_at": conference.ends_at.isoformat()})

        if self.feedback_repo.exists(conference_id, principal.id):
            raise FeedbackAlreadyGiven()

        try:
            feedback_id = self.id_generator()
        except Exception as exc:
            raise internal_error(
                logger,
                "Failed to generate feedback id",
                exc,
                conference_id=conference_id,
                user_id=principal.id,
            ) from exc

        feedback = Feedback(
            id=feedback_id,
            conference_id=conference_id,
            user_id=principal.id,
            comment=comment,
            created_at=now,
        )
        try:
            self.feedback_repo.add(feedback)
        except DuplicateFeedback as exc:
            raise FeedbackAlreadyGiven() from exc

        logger.info("Feedback %s created by %s on %s", feedback_id, principal.id, conference_id)
        self.bus.publish(
            FeedbackCreated(
                conference_id=conference_id,
                feedback_id=feedback_id,
                user_id=principal.id,
                occurred_at=now,
            )
        )
        return feedback_id

    def list_feedbacks(
        self, principal: Principal, conference_id: str, page: PageRequest
    ) -> tuple[list[FeedbackResponse], PageInfo]:
        validate_page(page, self.page_limit_max)
        self.scheduling.get_visible_conference(principal, conference_id)
        feedbacks, page_info = self.feedback_repo.list_by_conference(conference_id, page)
        return [FeedbackResponse.from_entity(f) for f in feedbacks], page_info

    def delete_feedback(self, principal: Principal, feedback_id: str) -> None:
        if is_restricted(principal):
            raise ForbiddenRole(details={"role": principal.role})
        try:
            self.feedback_repo.delete(feedback_id, self.clock())
        except RecordNotFound as exc:
            raise FeedbackNotFound(context={"feedback_id": feedback_id}) from exc
        logger.info("Feedback %s deleted by %s", feedback_id, principal.id)
