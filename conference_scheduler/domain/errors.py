"""Application errors raised by the scheduling services.

Every error carries a machine friendly ``code`` and a suggested HTTP
``status_code`` so the HTTP layer can translate it without knowing the
individual rules. Conflict and validation errors may carry a ``details``
payload (for example the list of conflicting conferences) to help the
client fix the request.

Internal errors are opaque: the caller only sees a generic message and a
``trace_id`` that correlates with the server-side log record.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any


class AppError(Exception):
    """Base application exception with structured metadata."""

    code: str = "APP_ERROR"
    status_code: int = 500
    default_message: str = "An application error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any | None = None,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        base = f"{self.__class__.__name__}({self.code}): {self.message}"
        if self.context:
            base += f" | context={self.context}"
        if self.details is not None:
            base += f" | details={self.details}"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation for API responses.

        ``context`` and ``cause`` stay server-side.
        """
        body: dict[str, Any] = {"error_code": self.code, "message": self.message}
        if self.details is not None:
            body["detail"] = self.details
        return body

    def with_context(self, **ctx: Any) -> AppError:
        self.context.update({k: v for k, v in ctx.items() if v is not None})
        return self


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Data not found."


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not allowed to perform this action."


class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409
    default_message = "The request conflicts with the current state."


class ValidationFailedError(AppError):
    code = "VALIDATION_FAILED"
    status_code = 400
    default_message = "The request is invalid."


class UnauthenticatedError(AppError):
    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication is required."


class InternalServerError(AppError):
    code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    default_message = "Something went wrong in our server. Please try again later."

    def __init__(self, trace_id: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.trace_id = trace_id or str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["trace_id"] = self.trace_id
        return body


def internal_error(
    logger: logging.Logger, message: str, cause: BaseException | None = None, **context: Any
) -> InternalServerError:
    """Log *message* with a fresh trace id and return the opaque error to raise."""
    err = InternalServerError(cause=cause, context=context)
    logger.error(
        "%s | trace_id=%s context=%s",
        message,
        err.trace_id,
        context,
        exc_info=cause,
    )
    return err


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class ConferenceNotFound(NotFoundError):
    code = "CONFERENCE_NOT_FOUND"
    default_message = "Conference not found."


class FeedbackNotFound(NotFoundError):
    code = "FEEDBACK_NOT_FOUND"
    default_message = "Feedback not found."


# ---------------------------------------------------------------------------
# Forbidden
# ---------------------------------------------------------------------------


class ForbiddenUser(ForbiddenError):
    code = "FORBIDDEN_USER"
    default_message = "You are not allowed to access this resource."


class ForbiddenRole(ForbiddenError):
    code = "FORBIDDEN_ROLE"
    default_message = "Your role is not allowed to perform this action."


class HostCannotRegister(ForbiddenError):
    code = "HOST_CANNOT_REGISTER"
    default_message = "The host cannot register to their own conference."


class NotRegistered(ForbiddenError):
    code = "USER_NOT_REGISTERED"
    default_message = "You are not registered to this conference."


class HostCannotGiveFeedback(ForbiddenError):
    code = "HOST_CANNOT_GIVE_FEEDBACK"
    default_message = "The host cannot give feedback on their own conference."


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------


class TimeWindowConflict(ConflictError):
    code = "TIME_WINDOW_CONFLICT"
    default_message = "The time window overlaps an approved conference."


class UserHasActiveProposal(ConflictError):
    code = "USER_HAS_ACTIVE_PROPOSAL"
    default_message = "You already have a pending conference proposal."


class AlreadyRegistered(ConflictError):
    code = "ALREADY_REGISTERED"
    default_message = "You are already registered to this conference."


class ConferenceFull(ConflictError):
    code = "CONFERENCE_FULL"
    default_message = "The conference has no seats left."


class ConflictingRegistrations(ConflictError):
    code = "CONFLICTING_REGISTRATIONS"
    default_message = "You are registered to a conference in the same time window."


class FeedbackAlreadyGiven(ConflictError):
    code = "FEEDBACK_ALREADY_GIVEN"
    default_message = "You have already given feedback on this conference."


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TimeAlreadyPassed(ValidationFailedError):
    code = "TIME_ALREADY_PASSED"
    default_message = "The start time has already passed."


class EndTimeBeforeStart(ValidationFailedError):
    code = "END_TIME_BEFORE_START"
    default_message = "The end time must be after the start time."


class ConferenceEnded(ValidationFailedError):
    code = "CONFERENCE_ENDED"
    default_message = "The conference has already ended."


class ConferenceNotEnded(ValidationFailedError):
    code = "CONFERENCE_NOT_ENDED"
    default_message = "Feedback can only be given after the conference has ended."


class UpdatePastConference(ValidationFailedError):
    code = "UPDATE_PAST_CONFERENCE"
    default_message = "A conference that has already ended cannot be updated."


class UpdateRejectedConference(ValidationFailedError):
    code = "UPDATE_REJECTED_CONFERENCE"
    default_message = "A rejected conference cannot be updated."


class UpdateApprovedTimeWindow(ValidationFailedError):
    code = "UPDATE_APPROVED_TIME_WINDOW"
    default_message = "The time window of an approved conference cannot be changed."


class UpdatePastConferenceStatus(ValidationFailedError):
    code = "UPDATE_PAST_CONFERENCE_STATUS"
    default_message = "A conference that has already started can only be rejected."


class InvalidStatusTransition(ValidationFailedError):
    code = "INVALID_STATUS_TRANSITION"
    default_message = "Only pending conferences can be approved or rejected."


class InvalidPagination(ValidationFailedError):
    code = "INVALID_PAGINATION"
    default_message = "after_id and before_id cannot be used together."


class InvalidLimit(ValidationFailedError):
    code = "INVALID_LIMIT"
    default_message = "limit is out of range."
