"""Domain events emitted after a successful mutation."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from conference_scheduler.domain.models import ConferenceStatus, utcnow


class DomainEvent(BaseModel):
    """Base for every event; *occurred_at* comes from the publishing service's clock."""

    occurred_at: datetime = Field(default_factory=utcnow)


class ConferenceProposed(DomainEvent):
    """Fired when a host submits a new proposal."""

    conference_id: str
    actor_id: str | None = None


class ConferenceUpdated(DomainEvent):
    """Fired when the host edits a conference's content or time window."""

    conference_id: str
    actor_id: str | None = None
    changed_fields: list[str]


class ConferenceStatusChanged(DomainEvent):
    """Fired when a coordinator approves or rejects a proposal."""

    conference_id: str
    actor_id: str | None = None
    previous: ConferenceStatus
    status: ConferenceStatus


class ConferenceDeleted(DomainEvent):
    """Fired when a conference is soft-deleted."""

    conference_id: str
    actor_id: str | None = None


class RegistrationCreated(DomainEvent):
    """Fired when a user takes a seat."""

    conference_id: str
    user_id: str


class FeedbackCreated(DomainEvent):
    """Fired when an attendee leaves feedback after the conference ended."""

    conference_id: str
    feedback_id: str
    user_id: str
