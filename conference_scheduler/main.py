"""FastAPI application serving the conference scheduling API."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AwareDatetime

from conference_scheduler.config import settings
from conference_scheduler.domain.bus import EventBus
from conference_scheduler.domain.errors import (
    AppError,
    ForbiddenRole,
    UnauthenticatedError,
    internal_error,
)
from conference_scheduler.domain.handlers import HandlerRegistry
from conference_scheduler.domain.models import (
    ConferenceQuery,
    ConferenceStatus,
    ConferenceUpdate,
    CreateConferenceRequest,
    CreateFeedbackRequest,
    OrderBy,
    PageRequest,
    Principal,
    RegistrationRequest,
    SortOrder,
    StatusUpdateRequest,
    UserRole,
)
from conference_scheduler.logging_config import setup_logging
from conference_scheduler.repos.memory import (
    ConferenceRepository,
    FeedbackRepository,
    RegistrationRepository,
    TimelineRepository,
)
from conference_scheduler.services.feedback import FeedbackService
from conference_scheduler.services.registration import RegistrationService
from conference_scheduler.services.scheduling import SchedulingService

setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.project_name, version=settings.api_version)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
conference_repo = ConferenceRepository()
registration_repo = RegistrationRepository(conference_repo)
feedback_repo = FeedbackRepository()
timeline_repo = TimelineRepository()

handler_registry = HandlerRegistry(bus=event_bus, timeline_repo=timeline_repo)

scheduling_service = SchedulingService(
    conference_repo,
    registration_repo,
    event_bus,
    timeline_repo=timeline_repo,
    page_limit_max=settings.page_limit_max,
    conflict_report_limit=settings.conflict_report_limit,
)
registration_service = RegistrationService(
    registration_repo,
    scheduling_service,
    event_bus,
    page_limit_max=settings.page_limit_max,
)
feedback_service = FeedbackService(
    feedback_repo,
    registration_repo,
    scheduling_service,
    event_bus,
    page_limit_max=settings.page_limit_max,
)


# ── Identity ──────────────────────────────────────────────────────────


def get_principal(request: Request) -> Principal:
    """Build the requesting principal from the identity headers set upstream."""
    user_id = request.headers.get(settings.user_id_header)
    raw_role = request.headers.get(settings.user_role_header)
    if not user_id or not raw_role:
        raise UnauthenticatedError()
    try:
        role = UserRole(raw_role)
    except ValueError as exc:
        raise UnauthenticatedError(details={"role": raw_role}) from exc
    return Principal(id=user_id, role=role)


def require_roles(*roles: UserRole):
    """Dependency factory: admins always pass, everyone else must hold one of *roles*."""

    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role == UserRole.ADMIN or principal.role in roles:
            return principal
        raise ForbiddenRole(details={"role": principal.role, "allowed": list(roles)})

    return dependency


_user_only = require_roles(UserRole.USER)
_coordinator_only = require_roles(UserRole.EVENT_COORDINATOR)
_user_or_coordinator = require_roles(UserRole.USER, UserRole.EVENT_COORDINATOR)


# ── Error translation ─────────────────────────────────────────────────


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s refused: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "VALIDATION_ERROR",
            "message": "There are invalid fields in your request. Please check and try again.",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log with full traceback; the caller only gets a trace id."""
    err = internal_error(
        logger,
        f"Unhandled exception for request {request.method} {request.url.path}",
        exc,
    )
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


# ── Conferences ───────────────────────────────────────────────────────


@app.post("/conferences", status_code=201)
def create_conference(
    payload: CreateConferenceRequest, principal: Principal = Depends(_user_only)
) -> dict:
    """Submit a new proposal; it starts out pending."""
    conference_id = scheduling_service.create_proposal(principal, payload)
    return {"conference": {"id": conference_id}}


@app.get("/conferences")
def list_conferences(
    status: ConferenceStatus,
    limit: int = 10,
    after_id: str | None = None,
    before_id: str | None = None,
    host_id: str | None = None,
    starts_before: AwareDatetime | None = None,
    starts_after: AwareDatetime | None = None,
    include_past: bool = False,
    order_by: OrderBy = OrderBy.CREATED_AT,
    order: SortOrder = SortOrder.ASC,
    title: str | None = None,
    principal: Principal = Depends(_user_or_coordinator),
) -> dict:
    query = ConferenceQuery(
        status=status,
        limit=limit,
        after_id=after_id,
        before_id=before_id,
        host_id=host_id,
        starts_before=starts_before,
        starts_after=starts_after,
        include_past=include_past,
        order_by=order_by,
        order=order,
        title=title,
    )
    conferences, page_info = scheduling_service.list_conferences(principal, query)
    return {"conferences": conferences, "pagination": page_info}


@app.get("/conferences/{conference_id}")
def get_conference(
    conference_id: str, principal: Principal = Depends(_user_or_coordinator)
) -> dict:
    return {"conference": scheduling_service.get_conference(principal, conference_id)}


@app.patch("/conferences/{conference_id}")
def update_conference(
    conference_id: str,
    payload: ConferenceUpdate,
    principal: Principal = Depends(_user_only),
) -> dict:
    """Partially update a conference; only the fields sent are changed."""
    conference = scheduling_service.update_conference(principal, conference_id, payload)
    return {"conference": conference}


@app.delete("/conferences/{conference_id}", status_code=204)
def delete_conference(
    conference_id: str, principal: Principal = Depends(_user_or_coordinator)
) -> Response:
    scheduling_service.delete_conference(principal, conference_id)
    return Response(status_code=204)


@app.patch("/conferences/{conference_id}/status")
def update_conference_status(
    conference_id: str,
    payload: StatusUpdateRequest,
    principal: Principal = Depends(_coordinator_only),
) -> dict:
    conference = scheduling_service.update_status(principal, conference_id, payload.status)
    return {"conference": conference}


@app.get("/conferences/{conference_id}/timeline")
def get_conference_timeline(
    conference_id: str, principal: Principal = Depends(_user_or_coordinator)
) -> dict:
    return {"timeline": scheduling_service.get_timeline(principal, conference_id)}


# ── Registrations ─────────────────────────────────────────────────────


@app.post("/registrations", status_code=201)
def register(payload: RegistrationRequest, principal: Principal = Depends(_user_only)) -> dict:
    registration_service.register(principal, payload.conference_id)
    return {"registration": {"conference_id": payload.conference_id, "user_id": principal.id}}


@app.get("/registrations/conferences/{conference_id}")
def list_registered_users(
    conference_id: str,
    limit: int = 10,
    after_id: str | None = None,
    before_id: str | None = None,
    principal: Principal = Depends(_user_or_coordinator),
) -> dict:
    page = PageRequest(after_id=after_id, before_id=before_id, limit=limit)
    users, page_info = registration_service.list_registered_users(principal, conference_id, page)
    return {"users": users, "pagination": page_info}


@app.get("/registrations/users/{user_id}")
def list_registered_conferences(
    user_id: str,
    limit: int = 10,
    after_id: str | None = None,
    before_id: str | None = None,
    include_past: bool = False,
    principal: Principal = Depends(_user_or_coordinator),
) -> dict:
    page = PageRequest(after_id=after_id, before_id=before_id, limit=limit)
    conferences, page_info = registration_service.list_registered_conferences(
        principal, user_id, include_past, page
    )
    return {"conferences": conferences, "pagination": page_info}


# ── Feedback ──────────────────────────────────────────────────────────


@app.post("/feedbacks", status_code=201)
def create_feedback(
    payload: CreateFeedbackRequest, principal: Principal = Depends(_user_only)
) -> dict:
    feedback_id = feedback_service.create_feedback(
        principal, payload.conference_id, payload.comment
    )
    return {"feedback": {"id": feedback_id}}


@app.get("/feedbacks/conferences/{conference_id}")
def list_feedbacks(
    conference_id: str,
    limit: int = 10,
    after_id: str | None = None,
    before_id: str | None = None,
    principal: Principal = Depends(_user_or_coordinator),
) -> dict:
    page = PageRequest(after_id=after_id, before_id=before_id, limit=limit)
    feedbacks, page_info = feedback_service.list_feedbacks(principal, conference_id, page)
    return {"feedbacks": feedbacks, "pagination": page_info}


@app.delete("/feedbacks/{feedback_id}", status_code=204)
def delete_feedback(
    feedback_id: str, principal: Principal = Depends(_coordinator_only)
) -> Response:
    feedback_service.delete_feedback(principal, feedback_id)
    return Response(status_code=204)
