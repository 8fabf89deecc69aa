"""API router exposing schedule generation and schedule mutation endpoints."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Query, Request, Response, status

from . import schemas
from .directory import get_directory_repository
from .errors import ConflictError, InvalidConfigurationError, NotFoundError
from .generation import CommitExecutor, GenerationQueries, PreviewBuilder
from .logs import ChangeLogRecorder, get_log_repository, list_logs
from .schedules import get_schedule_repository
from .services import ScheduleService

router = APIRouter(prefix="/scheduled-areas", tags=["schedules"])

GenerationBody = Annotated[dict[str, Any], Body(...)]


@contextmanager
def _domain_errors() -> Iterator[None]:
    """Translate domain exceptions into HTTP responses."""
    try:
        yield
    except NotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except InvalidConfigurationError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except ConflictError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=exc.message) from exc


def _resolve_actor(request: Request) -> str | None:
    header_actor = request.headers.get("x-actor")
    if header_actor:
        candidate = header_actor.strip()
        if candidate:
            return candidate
    return None


def _schedule_service() -> ScheduleService:
    directory = get_directory_repository()
    recorder = ChangeLogRecorder(get_log_repository(), directory)
    return ScheduleService(directory, get_schedule_repository(), recorder)


def _generation_queries() -> GenerationQueries:
    directory = get_directory_repository()
    schedules = get_schedule_repository()
    logs = get_log_repository()
    recorder = ChangeLogRecorder(logs, directory)
    return GenerationQueries(
        directory, schedules, logs, ScheduleService(directory, schedules, recorder)
    )


# Generations -----------------------------------------------------------------


@router.post(
    "/{area_id}/schedule-generations/preview",
    response_model=schemas.GenerationPreview,
    tags=["schedule-generations"],
)
def preview_generation(area_id: str, payload: GenerationBody) -> schemas.GenerationPreview:
    with _domain_errors():
        return PreviewBuilder(get_directory_repository()).preview(area_id, payload)


@router.post(
    "/{area_id}/schedule-generations",
    response_model=schemas.PersistedGeneration,
    status_code=status.HTTP_201_CREATED,
    tags=["schedule-generations"],
)
def create_generation(
    area_id: str,
    payload: GenerationBody,
    request: Request,
) -> schemas.PersistedGeneration:
    executor = CommitExecutor(get_directory_repository(), get_schedule_repository())
    with _domain_errors():
        return executor.commit(area_id, payload, _resolve_actor(request))


@router.get(
    "/{area_id}/schedule-generations",
    response_model=schemas.PaginatedScheduleGenerations,
    tags=["schedule-generations"],
)
def list_generations(
    area_id: str,
    page: Annotated[int, Query()] = 1,
    limit: Annotated[int, Query()] = 10,
) -> schemas.PaginatedScheduleGenerations:
    with _domain_errors():
        return _generation_queries().list_generations(area_id, page=page, limit=limit)


@router.get(
    "/{area_id}/schedule-generations/{generation_id}",
    response_model=schemas.PersistedGeneration,
    tags=["schedule-generations"],
)
def get_generation(area_id: str, generation_id: str) -> schemas.PersistedGeneration:
    with _domain_errors():
        return _generation_queries().get_generation(area_id, generation_id)


@router.delete(
    "/{area_id}/schedule-generations/{generation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["schedule-generations"],
)
def delete_generation(area_id: str, generation_id: str) -> Response:
    with _domain_errors():
        _generation_queries().delete_generation(area_id, generation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Schedules -------------------------------------------------------------------


@router.get(
    "/{area_id}/schedules",
    response_model=schemas.PaginatedSchedules,
)
def list_schedules(
    area_id: str,
    page: Annotated[int, Query()] = 1,
    limit: Annotated[int, Query()] = 10,
    schedule_generation_id: Annotated[
        str | None, Query(alias="scheduleGenerationId")
    ] = None,
    start_date: Annotated[date | None, Query(alias="startDate")] = None,
    end_date: Annotated[date | None, Query(alias="endDate")] = None,
    person_id: Annotated[str | None, Query(alias="personId")] = None,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    team_id: Annotated[str | None, Query(alias="teamId")] = None,
    schedule_status: Annotated[schemas.ScheduleStatus | None, Query(alias="status")] = None,
) -> schemas.PaginatedSchedules:
    with _domain_errors():
        return _schedule_service().list_schedules(
            area_id,
            page=page,
            limit=limit,
            schedule_generation_id=schedule_generation_id,
            start_date=start_date,
            end_date=end_date,
            person_id=person_id,
            group_id=group_id,
            team_id=team_id,
            status=schedule_status,
        )


@router.post(
    "/{area_id}/schedules",
    response_model=schemas.ScheduleDetails,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule(
    area_id: str, payload: schemas.ScheduleCreateRequest
) -> schemas.ScheduleDetails:
    with _domain_errors():
        return _schedule_service().create_schedule(area_id, payload)


@router.delete(
    "/{area_id}/schedules/{schedule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_schedule(area_id: str, schedule_id: str) -> Response:
    with _domain_errors():
        _schedule_service().delete_schedule(area_id, schedule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{area_id}/schedules/{schedule_id}",
    response_model=schemas.ScheduleDetails,
)
def get_schedule(area_id: str, schedule_id: str) -> schemas.ScheduleDetails:
    with _domain_errors():
        return _schedule_service().get_schedule(area_id, schedule_id)


@router.patch(
    "/{area_id}/schedules/{schedule_id}",
    response_model=schemas.ScheduleDetails,
)
def update_schedule(
    area_id: str,
    schedule_id: str,
    payload: schemas.ScheduleUpdateRequest,
    request: Request,
) -> schemas.ScheduleDetails:
    with _domain_errors():
        return _schedule_service().update_schedule(
            area_id, schedule_id, payload, _resolve_actor(request)
        )


@router.get(
    "/{area_id}/schedules/{schedule_id}/logs",
    response_model=schemas.PaginatedScheduleLogs,
    tags=["schedule-logs"],
)
def list_schedule_logs(
    area_id: str,
    schedule_id: str,
    page: Annotated[int, Query()] = 1,
    limit: Annotated[int, Query()] = 10,
    change_type: Annotated[schemas.ChangeType | None, Query(alias="changeType")] = None,
    person_id: Annotated[str | None, Query(alias="personId")] = None,
    changed_by: Annotated[str | None, Query(alias="changedBy")] = None,
) -> schemas.PaginatedScheduleLogs:
    directory = get_directory_repository()
    with _domain_errors():
        _schedule_service().require_schedule(area_id, schedule_id)
        return list_logs(
            get_log_repository(),
            directory,
            schedule_id,
            page=page,
            limit=limit,
            change_type=change_type,
            person_id=person_id,
            changed_by=changed_by,
        )


@router.post(
    "/{area_id}/schedules/{schedule_id}/members",
    response_model=schemas.ScheduleMemberInfo,
    status_code=status.HTTP_201_CREATED,
    tags=["schedule-members"],
)
def add_schedule_member(
    area_id: str,
    schedule_id: str,
    payload: schemas.ScheduleMemberCreateRequest,
    request: Request,
) -> schemas.ScheduleMemberInfo:
    with _domain_errors():
        return _schedule_service().add_member(
            area_id, schedule_id, payload, _resolve_actor(request)
        )


@router.patch(
    "/{area_id}/schedules/{schedule_id}/members/{member_id}",
    response_model=schemas.ScheduleMemberInfo,
    tags=["schedule-members"],
)
def update_schedule_member(
    area_id: str,
    schedule_id: str,
    member_id: str,
    payload: schemas.ScheduleMemberUpdateRequest,
    request: Request,
) -> schemas.ScheduleMemberInfo:
    with _domain_errors():
        return _schedule_service().update_member(
            area_id, schedule_id, member_id, payload, _resolve_actor(request)
        )


@router.delete(
    "/{area_id}/schedules/{schedule_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["schedule-members"],
)
def remove_schedule_member(
    area_id: str, schedule_id: str, member_id: str, request: Request
) -> Response:
    with _domain_errors():
        _schedule_service().remove_member(
            area_id, schedule_id, member_id, _resolve_actor(request)
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{area_id}/schedules/{schedule_id}/team-assignments",
    response_model=schemas.TeamAssignmentInfo,
    status_code=status.HTTP_201_CREATED,
    tags=["schedule-members"],
)
def add_team_assignment(
    area_id: str,
    schedule_id: str,
    payload: schemas.TeamAssignmentCreateRequest,
    request: Request,
) -> schemas.TeamAssignmentInfo:
    with _domain_errors():
        return _schedule_service().add_team_assignment(
            area_id, schedule_id, payload, _resolve_actor(request)
        )


@router.delete(
    "/{area_id}/schedules/{schedule_id}/team-assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["schedule-members"],
)
def remove_team_assignment(
    area_id: str, schedule_id: str, assignment_id: str, request: Request
) -> Response:
    with _domain_errors():
        _schedule_service().remove_team_assignment(
            area_id, schedule_id, assignment_id, _resolve_actor(request)
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
