"""Registration service: taking seats and listing who sits where."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.errors import (
    AlreadyRegistered,
    ConferenceFull,
    ConferenceNotFound,
    ConflictingRegistrations,
    ForbiddenUser,
)
from conference_scheduler.domain.events import RegistrationCreated
from conference_scheduler.domain.models import (
    ConferenceResponse,
    PageInfo,
    PageRequest,
    Principal,
    RegisteredUserResponse,
    Registration,
    utcnow,
)
from conference_scheduler.repos.memory import (
    CapacityViolation,
    DuplicateRegistration,
    OverlapViolation,
    RecordNotFound,
    RegistrationRepository,
)
from conference_scheduler.services.capacity import CapacityGuard
from conference_scheduler.services.conflicts import conflict_details
from conference_scheduler.services.pagination import MAX_LIMIT, validate_page
from conference_scheduler.services.scheduling import SchedulingService
from conference_scheduler.services.visibility import is_restricted

logger = logging.getLogger(__name__)


class RegistrationService:
    def __init__(
        self,
        registration_repo: RegistrationRepository,
        scheduling: SchedulingService,
        bus: EventBus,
        clock: Callable[[], datetime] = utcnow,
        page_limit_max: int = MAX_LIMIT,
    ) -> None:
        self.registration_repo = registration_repo
        self.scheduling = scheduling
        self.bus = bus
        self.clock = clock
        self.page_limit_max = page_limit_max
        self.guard = CapacityGuard(
            registration_repo, scheduling.get_visible_conference, clock=clock
        )

    def register(self, principal: Principal, conference_id: str) -> None:
        self.guard.admit(principal, conference_id)

        now = self.clock()
        registration = Registration(
            conference_id=conference_id, user_id=principal.id, created_at=now
        )
        try:
            self.registration_repo.add(registration)
        except RecordNotFound as exc:
            raise ConferenceNotFound(context={"conference_id": conference_id}) from exc
        except DuplicateRegistration as exc:
            raise AlreadyRegistered() from exc
        except CapacityViolation as exc:
            logger.warning("Conference %s filled up while %s registered", conference_id, principal.id)
            raise ConferenceFull() from exc
        except OverlapViolation as exc:
            raise ConflictingRegistrations(details=conflict_details(exc.conflicts)) from exc

        logger.info("User %s registered to conference %s", principal.id, conference_id)
        self.bus.publish(
            RegistrationCreated(conference_id=conference_id, user_id=principal.id, occurred_at=now)
        )

    def list_registered_users(
        self, principal: Principal, conference_id: str, page: PageRequest
    ) -> tuple[list[RegisteredUserResponse], PageInfo]:
        validate_page(page, self.page_limit_max)
        conference = self.scheduling.get_visible_conference(principal, conference_id)
        if is_restricted(principal) and conference.host_id != principal.id:
            raise ForbiddenUser(context={"conference_id": conference_id})

        registrations, page_info = self.registration_repo.list_users_by_conference(
            conference_id, page
        )
        users = [
            RegisteredUserResponse(id=r.user_id, registered_at=r.created_at)
            for r in registrations
        ]
        return users, page_info

    def list_registered_conferences(
        self, principal: Principal, user_id: str, include_past: bool, page: PageRequest
    ) -> tuple[list[ConferenceResponse], PageInfo]:
        validate_page(page, self.page_limit_max)
        if is_restricted(principal) and principal.id != user_id:
            raise ForbiddenUser(details={"user_id": user_id})

        conferences, page_info = self.registration_repo.list_conferences_by_user(
            user_id, include_past, page, now=self.clock()
        )
        responses = [
            ConferenceResponse.from_entity(
                c, seats_taken=self.registration_repo.count_by_conference(c.id)
            )
            for c in conferences
        ]
        return responses, page_info
