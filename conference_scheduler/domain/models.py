"""Domain models for the conference scheduling system."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator


class ConferenceStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserRole(StrEnum):
    ADMIN = "admin"
    EVENT_COORDINATOR = "event_coordinator"
    USER = "user"


COORDINATOR_ROLES = frozenset({UserRole.ADMIN, UserRole.EVENT_COORDINATOR})


class OrderBy(StrEnum):
    CREATED_AT = "created_at"
    STARTS_AT = "starts_at"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class TimelineEntryType(StrEnum):
    PROPOSED = "proposed"
    UPDATED = "updated"
    APPROVED = "approved"
    REJECTED = "rejected"
    DELETED = "deleted"
    REGISTERED = "registered"
    FEEDBACK_GIVEN = "feedback_given"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class Principal(BaseModel):
    """Who is making the call.

    Built once per request at the HTTP boundary and passed explicitly into
    every service method. A principal without a role is an internal/system
    caller and bypasses visibility restrictions.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    role: UserRole | None = None

    @classmethod
    def system(cls) -> Principal:
        return cls()

    @property
    def is_system(self) -> bool:
        return self.role is None

    @property
    def is_coordinator(self) -> bool:
        return self.role in COORDINATOR_ROLES


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Conference(BaseModel):
    id: str
    title: str
    description: str
    speaker_name: str
    speaker_title: str
    target_audience: str
    prerequisites: str | None = None
    seats: int = Field(gt=0)
    starts_at: datetime
    ends_at: datetime
    host_id: str
    status: ConferenceStatus = ConferenceStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> Conference:
        if self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self

    def overlaps(self, starts_at: datetime, ends_at: datetime) -> bool:
        """Half-open interval test: touching endpoints do not overlap."""
        return self.starts_at < ends_at and self.ends_at > starts_at


class Registration(BaseModel):
    conference_id: str
    user_id: str
    created_at: datetime = Field(default_factory=utcnow)


class Feedback(BaseModel):
    id: str
    conference_id: str
    user_id: str
    comment: str
    created_at: datetime = Field(default_factory=utcnow)
    deleted_at: datetime | None = None


class TimelineEntry(BaseModel):
    conference_id: str
    type: TimelineEntryType
    actor_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------


class PageRequest(BaseModel):
    after_id: str | None = None
    before_id: str | None = None
    limit: int = 10


class PageInfo(BaseModel):
    has_more: bool = False
    first_id: str | None = None
    last_id: str | None = None


class ConferenceQuery(PageRequest):
    status: ConferenceStatus
    host_id: str | None = None
    starts_before: AwareDatetime | None = None
    starts_after: AwareDatetime | None = None
    include_past: bool = False
    order_by: OrderBy = OrderBy.CREATED_AT
    order: SortOrder = SortOrder.ASC
    title: str | None = None


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateConferenceRequest(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=3, max_length=1000)
    speaker_name: str = Field(min_length=3, max_length=100)
    speaker_title: str = Field(min_length=3, max_length=100)
    target_audience: str = Field(min_length=3, max_length=255)
    prerequisites: str | None = Field(default=None, max_length=255)
    seats: int = Field(gt=0)
    starts_at: AwareDatetime
    ends_at: AwareDatetime


_NULLABLE_UPDATE_FIELDS = frozenset({"prerequisites"})


class ConferenceUpdate(BaseModel):
    """Partial update of a conference's mutable fields.

    Only fields the caller actually sent are applied (``model_fields_set``),
    so "absent" and "explicitly cleared" stay distinguishable. Only
    ``prerequisites`` may be cleared with ``null``.
    """

    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=3, max_length=1000)
    speaker_name: str | None = Field(default=None, min_length=3, max_length=100)
    speaker_title: str | None = Field(default=None, min_length=3, max_length=100)
    target_audience: str | None = Field(default=None, min_length=3, max_length=255)
    prerequisites: str | None = Field(default=None, max_length=255)
    starts_at: AwareDatetime | None = None
    ends_at: AwareDatetime | None = None

    @model_validator(mode="after")
    def _no_null_for_required(self) -> ConferenceUpdate:
        for name in self.model_fields_set - _NULLABLE_UPDATE_FIELDS:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    @property
    def changes_time_window(self) -> bool:
        return bool({"starts_at", "ends_at"} & self.model_fields_set)

    def apply_to(self, conference: Conference) -> Conference:
        """Return a copy of *conference* with every sent field applied."""
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        return conference.model_copy(update=changes)


class StatusUpdateRequest(BaseModel):
    status: ConferenceStatus


class RegistrationRequest(BaseModel):
    conference_id: str


class CreateFeedbackRequest(BaseModel):
    conference_id: str
    comment: str = Field(min_length=1, max_length=1000)


class UserRef(BaseModel):
    id: str


class ConferenceResponse(BaseModel):
    id: str
    title: str
    description: str
    speaker_name: str
    speaker_title: str
    target_audience: str
    prerequisites: str | None = None
    seats: int
    seats_taken: int = 0
    starts_at: datetime
    ends_at: datetime
    host: UserRef
    status: ConferenceStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, conference: Conference, seats_taken: int = 0) -> ConferenceResponse:
        return cls(
            **conference.model_dump(exclude={"host_id", "deleted_at"}),
            host=UserRef(id=conference.host_id),
            seats_taken=seats_taken,
        )


class ConflictingConference(BaseModel):
    """Diagnostic summary of a conference that blocks a time window."""

    id: str
    title: str
    starts_at: datetime
    ends_at: datetime

    @classmethod
    def from_entity(cls, conference: Conference) -> ConflictingConference:
        return cls(
            id=conference.id,
            title=conference.title,
            starts_at=conference.starts_at,
            ends_at=conference.ends_at,
        )


class RegisteredUserResponse(BaseModel):
    id: str
    registered_at: datetime


class FeedbackResponse(BaseModel):
    id: str
    comment: str
    created_at: datetime
    user: UserRef

    @classmethod
    def from_entity(cls, feedback: Feedback) -> FeedbackResponse:
        return cls(
            id=feedback.id,
            comment=feedback.comment,
            created_at=feedback.created_at,
            user=UserRef(id=feedback.user_id),
        )
