"""Pydantic models for the roster scheduling API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from .errors import InvalidConfigurationError

GenerationType = Literal[
    "group",
    "people",
    "team_without_restriction",
    "team_with_restriction",
]
PeriodType = Literal["fixed", "monthly", "weekly", "daily"]
DistributionOrder = Literal["sequential", "random", "balanced"]
ParticipantSelection = Literal["all", "by_group", "individual", "all_with_exclusions"]
ScheduleType = Literal["group", "team", "individual"]
ScheduleStatus = Literal["pending", "confirmed", "cancelled"]
MemberStatus = Literal["pending", "accepted", "rejected"]
DistributionBalance = Literal["balanced", "unbalanced", "critical"]
ChangeType = Literal[
    "member_added",
    "member_removed",
    "member_status_changed",
    "member_present_changed",
    "member_responsibility_changed",
    "schedule_start_date_changed",
    "schedule_end_date_changed",
    "schedule_status_changed",
    "team_changed",
    "team_member_added",
    "team_member_removed",
]

HH_MM_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


def _to_camel(string: str) -> str:
    first, *rest = string.split("_")
    return first + "".join(word.capitalize() for word in rest)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Generation configuration


class PeriodConfig(CamelModel):
    """Refines how a period type is expanded into schedule instances."""

    base_date_time: datetime | None = None
    # Hours for fixed periods, days for weekly and monthly ones.
    duration: int | None = Field(default=None, ge=1)
    interval: int | None = Field(default=None, ge=1)
    # 0 = Sunday ... 6 = Saturday
    weekdays: list[Annotated[int, Field(ge=0, le=6)]] | None = Field(
        default=None, min_length=1
    )
    start_time: str | None = Field(default=None, pattern=HH_MM_PATTERN)
    end_time: str | None = Field(default=None, pattern=HH_MM_PATTERN)
    excluded_dates: list[date] = Field(default_factory=list)
    included_dates: list[date] = Field(default_factory=list)


class GroupGenerationConfig(CamelModel):
    group_ids: list[str] = Field(..., min_length=1)
    groups_per_schedule: int = Field(default=1, ge=1)
    distribution_order: DistributionOrder = "sequential"
    consider_absences: bool = False
    excluded_person_ids: list[str] = Field(default_factory=list)


class PeopleGenerationConfig(CamelModel):
    consider_absences: bool = False
    excluded_person_ids: list[str] = Field(default_factory=list)


class TeamGenerationConfig(CamelModel):
    team_id: str = Field(..., min_length=1)
    participant_selection: ParticipantSelection = "all"
    selected_group_ids: list[str] = Field(default_factory=list)
    selected_person_ids: list[str] = Field(default_factory=list)
    excluded_person_ids: list[str] = Field(default_factory=list)
    consider_absences: bool = False
    require_responsibilities: bool = False
    repeat_persons_when_insufficient: bool = False

    @model_validator(mode="after")
    def _check_selection(self) -> TeamGenerationConfig:
        if self.participant_selection == "by_group" and not self.selected_group_ids:
            raise ValueError("selectedGroupIds is required when participantSelection is 'by_group'")
        if self.participant_selection == "individual" and not self.selected_person_ids:
            raise ValueError(
                "selectedPersonIds is required when participantSelection is 'individual'"
            )
        return self


class _GenerationConfigurationBase(CamelModel):
    period_type: PeriodType
    period_start_date: date
    period_end_date: date
    period_config: PeriodConfig | None = None


class GroupGenerationConfiguration(_GenerationConfigurationBase):
    generation_type: Literal["group"]
    group_config: GroupGenerationConfig


class PeopleGenerationConfiguration(_GenerationConfigurationBase):
    generation_type: Literal["people"]
    people_config: PeopleGenerationConfig


class TeamGenerationConfiguration(_GenerationConfigurationBase):
    generation_type: Literal["team_without_restriction", "team_with_restriction"]
    team_config: TeamGenerationConfig


GenerationConfiguration = Annotated[
    Union[
        GroupGenerationConfiguration,
        PeopleGenerationConfiguration,
        TeamGenerationConfiguration,
    ],
    Field(discriminator="generation_type"),
]

_CONFIGURATION_ADAPTER: TypeAdapter[GenerationConfiguration] = TypeAdapter(
    GenerationConfiguration
)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid generation configuration"


def parse_generation_configuration(payload: Any) -> GenerationConfiguration:
    """Validate a raw request body into the matching configuration variant."""
    try:
        return _CONFIGURATION_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InvalidConfigurationError(_format_validation_error(exc)) from exc


def dump_generation_configuration(config: GenerationConfiguration) -> dict[str, Any]:
    return config.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Preview


class ResponsibilityInfo(CamelModel):
    id: str
    name: str
    image_url: str | None = None


class GroupMemberPreview(CamelModel):
    person_id: str
    person_name: str
    person_photo_url: str | None = None
    responsibilities: list[ResponsibilityInfo] = Field(default_factory=list)


class GroupPreview(CamelModel):
    id: str
    name: str
    members: list[GroupMemberPreview] = Field(default_factory=list)


class TeamPreview(CamelModel):
    id: str
    name: str


class TeamAssignmentPreview(CamelModel):
    person_id: str
    person_name: str | None = None
    role_id: str
    role_name: str | None = None


class SchedulePreview(CamelModel):
    id: str
    start_datetime: datetime
    end_datetime: datetime
    groups: list[GroupPreview] | None = None
    team: TeamPreview | None = None
    assignments: list[TeamAssignmentPreview] | None = None
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class GenerationSummary(CamelModel):
    total_schedules: int = Field(..., ge=0)
    total_participants: int = Field(..., ge=0)
    warnings: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    distribution_balance: DistributionBalance


class GenerationPreview(CamelModel):
    model_config = ConfigDict(
        alias_generator=_to_camel, populate_by_name=True, frozen=True
    )

    configuration: GenerationConfiguration
    schedules: list[SchedulePreview]
    summary: GenerationSummary


# ---------------------------------------------------------------------------
# Persisted schedules


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ScheduleGenerationResponse(CamelModel):
    id: str
    scheduled_area_id: str
    generation_type: GenerationType
    period_type: PeriodType
    period_start_date: date
    period_end_date: date
    configuration: dict[str, Any]
    total_schedules_generated: int
    created_by: str | None = None
    created_at: datetime


class PaginatedScheduleGenerations(CamelModel):
    data: list[ScheduleGenerationResponse]
    meta: PaginationMeta


class TeamAssignmentInfo(CamelModel):
    id: str
    person_id: str
    person_name: str | None = None
    team_role_id: str
    role_name: str | None = None


class ScheduleMemberInfo(CamelModel):
    id: str
    person_id: str
    person_name: str | None = None
    responsibility_id: str
    responsibility_name: str | None = None
    status: MemberStatus
    present: bool | None = None
    created_at: datetime


class ScheduleSummary(CamelModel):
    id: str
    schedule_generation_id: str | None = None
    scheduled_area_id: str
    start_datetime: datetime
    end_datetime: datetime
    schedule_type: ScheduleType
    status: ScheduleStatus
    participants_count: int = 0
    created_at: datetime
    updated_at: datetime


class PaginatedSchedules(CamelModel):
    data: list[ScheduleSummary]
    meta: PaginationMeta


class ScheduleDetails(ScheduleSummary):
    groups: list[GroupPreview] = Field(default_factory=list)
    team: TeamPreview | None = None
    assignments: list[TeamAssignmentInfo] = Field(default_factory=list)
    members: list[ScheduleMemberInfo] = Field(default_factory=list)


class PersistedGeneration(ScheduleGenerationResponse):
    schedules: list[ScheduleDetails] = Field(default_factory=list)


class ScheduleUpdateRequest(CamelModel):
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    status: ScheduleStatus | None = None
    team_id: str | None = None


class ScheduleMemberCreateRequest(CamelModel):
    person_id: str = Field(..., min_length=1)
    responsibility_id: str = Field(..., min_length=1)


class ScheduleMemberUpdateRequest(CamelModel):
    responsibility_id: str | None = None
    status: MemberStatus | None = None
    present: bool | None = None


class TeamAssignmentCreateRequest(CamelModel):
    person_id: str = Field(..., min_length=1)
    team_role_id: str = Field(..., min_length=1)


class ScheduleCreateRequest(CamelModel):
    """A schedule entered by hand rather than produced by a generation.

    ``group`` schedules need ``groupIds``, ``team`` schedules need ``teamId``
    and ``assignments``, and ``individual`` schedules need ``members``.
    """

    start_datetime: datetime
    end_datetime: datetime
    schedule_type: ScheduleType
    group_ids: list[str] = Field(default_factory=list)
    team_id: str | None = None
    assignments: list[TeamAssignmentCreateRequest] = Field(default_factory=list)
    members: list[ScheduleMemberCreateRequest] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Logs


class ChangedByPerson(CamelModel):
    id: str
    full_name: str
    email: str | None = None


class ScheduleLogEntry(CamelModel):
    id: int
    schedule_id: str
    schedule_member_id: str | None = None
    person_id: str | None = None
    change_type: ChangeType
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    changed_by: str | None = None
    changed_by_person: ChangedByPerson | None = None
    message: str | None = None
    created_at: datetime


class PaginatedScheduleLogs(CamelModel):
    data: list[ScheduleLogEntry]
    meta: PaginationMeta


__all__ = [
    "ChangeType",
    "DistributionOrder",
    "GenerationType",
    "PeriodType",
    "ScheduleStatus",
    "MemberStatus",
    "PeriodConfig",
    "GroupGenerationConfig",
    "PeopleGenerationConfig",
    "TeamGenerationConfig",
    "GroupGenerationConfiguration",
    "PeopleGenerationConfiguration",
    "TeamGenerationConfiguration",
    "GenerationConfiguration",
    "parse_generation_configuration",
    "dump_generation_configuration",
    "ResponsibilityInfo",
    "GroupMemberPreview",
    "GroupPreview",
    "TeamPreview",
    "TeamAssignmentPreview",
    "SchedulePreview",
    "GenerationSummary",
    "GenerationPreview",
    "PaginationMeta",
    "ScheduleGenerationResponse",
    "PaginatedScheduleGenerations",
    "TeamAssignmentInfo",
    "ScheduleMemberInfo",
    "ScheduleSummary",
    "PaginatedSchedules",
    "ScheduleDetails",
    "PersistedGeneration",
    "ScheduleUpdateRequest",
    "ScheduleMemberCreateRequest",
    "ScheduleMemberUpdateRequest",
    "TeamAssignmentCreateRequest",
    "ScheduleCreateRequest",
    "ChangedByPerson",
    "ScheduleLogEntry",
    "PaginatedScheduleLogs",
]
