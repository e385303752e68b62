"""Registration admission.

The checks run in a fixed order and stop at the first failure:

1. the conference resolves and is visible to the user,
2. the user is not the host,
3. the conference has not ended,
4. the user is not already registered,
5. a seat is left,
6. none of the user's other registrations overlap this conference.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from conference_scheduler.domain.errors import (
    AlreadyRegistered,
    ConferenceEnded,
    ConferenceFull,
    ConflictingRegistrations,
    HostCannotRegister,
)
from conference_scheduler.domain.models import Conference, Principal, utcnow
from conference_scheduler.repos.memory import RegistrationRepository
from conference_scheduler.services.conflicts import conflict_details


class CapacityGuard:
    def __init__(
        self,
        registration_repo: RegistrationRepository,
        resolve_conference: Callable[[Principal, str], Conference],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registration_repo = registration_repo
        self.resolve_conference = resolve_conference
        self.clock = clock

    def admit(self, principal: Principal, conference_id: str) -> Conference:
        """Return the conference if *principal* may take a seat, else raise."""
        conference = self.resolve_conference(principal, conference_id)

        if conference.host_id == principal.id:
            raise HostCannotRegister()

        if conference.ends_at <= self.clock():
            raise ConferenceEnded()

        if self.registration_repo.exists(conference_id, principal.id):
            raise AlreadyRegistered()

        taken = self.registration_repo.count_by_conference(conference_id)
        if taken >= conference.seats:
            raise ConferenceFull(details={"seats": conference.seats, "seats_taken": taken})

        conflicts = self.registration_repo.list_conflicting(
            principal.id, conference.starts_at, conference.ends_at
        )
        if conflicts:
            raise ConflictingRegistrations(details=conflict_details(conflicts))

        return conference
