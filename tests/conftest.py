"""Shared fixtures: fresh repositories and services with a frozen clock."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.handlers import HandlerRegistry
from conference_scheduler.domain.models import (
    ConferenceStatus,
    CreateConferenceRequest,
    Principal,
    UserRole,
)
from conference_scheduler.repos.memory import (
    ConferenceRepository,
    FeedbackRepository,
    RegistrationRepository,
    TimelineRepository,
)
from conference_scheduler.services.feedback import FeedbackService
from conference_scheduler.services.registration import RegistrationService
from conference_scheduler.services.scheduling import SchedulingService

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class SequentialIds:
    """Deterministic, lexically increasing UUIDv7-shaped ids."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"00000000-0000-7000-8000-{next(self._counter):012d}"


class Env:
    def __init__(self) -> None:
        self.clock = FrozenClock(NOW)
        self.ids = SequentialIds()
        self.bus = EventBus()
        self.conference_repo = ConferenceRepository()
        self.registration_repo = RegistrationRepository(self.conference_repo)
        self.feedback_repo = FeedbackRepository()
        self.timeline_repo = TimelineRepository()
        self.handlers = HandlerRegistry(bus=self.bus, timeline_repo=self.timeline_repo)
        self.scheduling = SchedulingService(
            self.conference_repo,
            self.registration_repo,
            self.bus,
            timeline_repo=self.timeline_repo,
            id_generator=self.ids,
            clock=self.clock,
        )
        self.registration = RegistrationService(
            self.registration_repo, self.scheduling, self.bus, clock=self.clock
        )
        self.feedback = FeedbackService(
            self.feedback_repo,
            self.registration_repo,
            self.scheduling,
            self.bus,
            id_generator=self.ids,
            clock=self.clock,
        )
        self.coordinator = Principal(id="coordinator", role=UserRole.EVENT_COORDINATOR)
        self.admin = Principal(id="admin", role=UserRole.ADMIN)
        self.system = Principal.system()
        self._hosts = itertools.count(1)

    @staticmethod
    def user(user_id: str) -> Principal:
        return Principal(id=user_id, role=UserRole.USER)

    def request(
        self,
        start: timedelta = timedelta(hours=1),
        duration: timedelta = timedelta(hours=1),
        seats: int = 10,
        title: str = "Scaling Python services",
    ) -> CreateConferenceRequest:
        starts_at = self.clock() + start
        return CreateConferenceRequest(
            title=title,
            description="A talk about running Python in production.",
            speaker_name="Ada Speaker",
            speaker_title="Staff Engineer",
            target_audience="Backend developers",
            seats=seats,
            starts_at=starts_at,
            ends_at=starts_at + duration,
        )

    def propose(self, host_id: str | None = None, **request_kwargs) -> str:
        host_id = host_id or f"host-{next(self._hosts)}"
        return self.scheduling.create_proposal(self.user(host_id), self.request(**request_kwargs))

    def approve(self, conference_id: str) -> None:
        self.scheduling.update_status(self.coordinator, conference_id, ConferenceStatus.APPROVED)

    def approved(self, host_id: str | None = None, **request_kwargs) -> str:
        conference_id = self.propose(host_id, **request_kwargs)
        self.approve(conference_id)
        return conference_id


@pytest.fixture()
def env() -> Env:
    """Fresh bus + repos + services for each test."""
    return Env()
