"""Preview and commit of recurring schedule generations."""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any

from pydantic import BaseModel

from .config import get_settings
from .directory import Absence, DirectoryRepository, Team
from .distribution import ParticipantDistributor
from .errors import InvalidConfigurationError, NotFoundError
from .logs import ScheduleLogRepository
from .periods import Window, expand_period
from .schedules import (
    GenerationRecord,
    MemberRecord,
    ScheduleGroupRecord,
    ScheduleRecord,
    ScheduleRepository,
    ScheduleTeamRecord,
    TeamAssignmentRecord,
)
from .schemas import (
    GenerationConfiguration,
    GenerationPreview,
    GenerationSummary,
    GroupGenerationConfiguration,
    PaginatedScheduleGenerations,
    PaginationMeta,
    PersistedGeneration,
    ScheduleDetails,
    ScheduleGenerationResponse,
    ScheduleMemberInfo,
    SchedulePreview,
    ScheduleType,
    TeamAssignmentInfo,
    TeamGenerationConfiguration,
    dump_generation_configuration,
    parse_generation_configuration,
)
from .services import ScheduleService
from .utils import logger, new_id, normalize_instant, page_window, total_pages, utc_now

AREA_NOT_FOUND = "Scheduled area not found"
GENERATION_NOT_FOUND = "Schedule generation not found"
UNBALANCED_WARNING_RATIO = 0.3


def schedule_type_for(configuration: GenerationConfiguration) -> ScheduleType:
    if isinstance(configuration, GroupGenerationConfiguration):
        return "group"
    if isinstance(configuration, TeamGenerationConfiguration):
        return "team"
    return "individual"


def summarize(schedules: list[SchedulePreview]) -> GenerationSummary:
    """Aggregate counts and classify how healthy the distribution is."""
    total = len(schedules)
    warnings = sum(len(schedule.warnings) for schedule in schedules)
    errors = sum(len(schedule.errors) for schedule in schedules)

    participants: set[str] = set()
    for schedule in schedules:
        for group in schedule.groups or []:
            participants.update(member.person_id for member in group.members)
        for assignment in schedule.assignments or []:
            if assignment.person_id:
                participants.add(assignment.person_id)

    if errors > 0:
        balance = "critical"
    elif warnings > total * UNBALANCED_WARNING_RATIO:
        balance = "unbalanced"
    else:
        balance = "balanced"

    return GenerationSummary(
        total_schedules=total,
        total_participants=len(participants),
        warnings=warnings,
        errors=errors,
        distribution_balance=balance,
    )


def _coerce_configuration(configuration: Any) -> GenerationConfiguration:
    if isinstance(configuration, BaseModel):
        return configuration
    return parse_generation_configuration(configuration)


class PreviewBuilder:
    """Computes what a generation would produce without writing anything."""

    def __init__(
        self,
        directory: DirectoryRepository,
        *,
        timezone: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._directory = directory
        self._timezone = timezone or get_settings().timezone
        self._rng = rng

    def preview(self, area_id: str, configuration: Any) -> GenerationPreview:
        if self._directory.get_area(area_id) is None:
            raise NotFoundError(AREA_NOT_FOUND)
        configuration = _coerce_configuration(configuration)

        windows = expand_period(
            configuration.period_type,
            configuration.period_start_date,
            configuration.period_end_date,
            configuration.period_config,
            self._timezone,
        )
        distributor = self._build_distributor(area_id, configuration, windows)

        schedules = []
        for index, (start, end) in enumerate(windows):
            assignment = distributor.distribute(index, start, end)
            schedules.append(
                SchedulePreview(
                    id=f"preview-{index + 1}",
                    start_datetime=start,
                    end_datetime=end,
                    groups=assignment.groups,
                    team=assignment.team,
                    assignments=assignment.assignments,
                    warnings=assignment.warnings,
                    errors=assignment.errors,
                )
            )

        summary = summarize(schedules)
        logger.bind(
            area_id=area_id,
            generation_type=configuration.generation_type,
            schedules=summary.total_schedules,
            errors=summary.errors,
        ).debug("Generation preview computed")
        return GenerationPreview(
            configuration=configuration, schedules=schedules, summary=summary
        )

    def _build_distributor(
        self,
        area_id: str,
        configuration: GenerationConfiguration,
        windows: list[Window],
    ) -> ParticipantDistributor:
        if isinstance(configuration, GroupGenerationConfiguration):
            group_config = configuration.group_config
            groups = self._directory.get_groups_with_members(area_id, group_config.group_ids)
            found = {group.id for group in groups}
            missing = [
                group_id
                for group_id in dict.fromkeys(group_config.group_ids)
                if group_id not in found
            ]
            absences: list[Absence] = []
            if group_config.consider_absences and windows:
                person_ids = {member.person.id for group in groups for member in group.members}
                absences = self._directory.list_absences(
                    person_ids, windows[0][0].date(), windows[-1][1].date()
                )
            return ParticipantDistributor(
                configuration,
                groups=groups,
                missing_group_ids=missing,
                absences=absences,
                rng=self._rng,
            )
        if isinstance(configuration, TeamGenerationConfiguration):
            return ParticipantDistributor(
                configuration,
                team=self._resolve_team(area_id, configuration.team_config.team_id),
                rng=self._rng,
            )
        return ParticipantDistributor(configuration, rng=self._rng)

    def _resolve_team(self, area_id: str, team_id: str) -> Team | None:
        team = self._directory.get_team(team_id)
        if team is None or team.scheduled_area_id != area_id:
            return None
        return team


class CommitExecutor:
    """Materializes an accepted preview as a generation and its schedules.

    The steps are written one after another without a surrounding transaction.
    A failure after the schedule rows are inserted leaves them in place; they
    are reported in the error log so they can be cleaned up.
    """

    def __init__(
        self,
        directory: DirectoryRepository,
        schedules: ScheduleRepository,
        *,
        preview_builder: PreviewBuilder | None = None,
    ) -> None:
        self._directory = directory
        self._schedules = schedules
        self._preview_builder = preview_builder or PreviewBuilder(directory)

    def commit(
        self, area_id: str, configuration: Any, actor_id: str | None = None
    ) -> PersistedGeneration:
        preview = self._preview_builder.preview(area_id, configuration)
        if preview.summary.errors > 0:
            raise InvalidConfigurationError(
                "Cannot create schedules with errors. Please fix the configuration."
            )
        configuration = preview.configuration

        created_by = None
        if actor_id and self._directory.get_person(actor_id) is not None:
            created_by = actor_id

        now = utc_now()
        generation = self._schedules.insert_generation(
            GenerationRecord(
                id=new_id(),
                scheduled_area_id=area_id,
                generation_type=configuration.generation_type,
                period_type=configuration.period_type,
                period_start_date=configuration.period_start_date,
                period_end_date=configuration.period_end_date,
                configuration=dump_generation_configuration(configuration),
                total_schedules_generated=len(preview.schedules),
                created_by=created_by,
                created_at=now,
            )
        )
        log = logger.bind(area_id=area_id, generation_id=generation.id)

        schedule_type = schedule_type_for(configuration)
        inserted = self._schedules.insert_schedules(
            [
                ScheduleRecord(
                    id=new_id(),
                    schedule_generation_id=generation.id,
                    scheduled_area_id=area_id,
                    start_datetime=item.start_datetime,
                    end_datetime=item.end_datetime,
                    schedule_type=schedule_type,
                    created_at=now,
                    updated_at=now,
                )
                for item in preview.schedules
            ]
        )

        # Rows are matched back to their instance by start instant.
        by_start = {normalize_instant(row.start_datetime): row for row in inserted}
        pairs: list[tuple[SchedulePreview, ScheduleRecord]] = []
        claimed: set[str] = set()
        for item in preview.schedules:
            row = by_start.get(normalize_instant(item.start_datetime))
            if row is None or row.id in claimed:
                log.bind(start=item.start_datetime.isoformat()).warning(
                    "No stored schedule matches preview instance; skipping its links"
                )
                continue
            claimed.add(row.id)
            pairs.append((item, row))

        referenced = {group.id for item, _ in pairs for group in item.groups or []}
        if referenced:
            existing = self._directory.existing_group_ids(area_id, referenced)
            if existing != referenced:
                log.bind(
                    missing_group_ids=sorted(referenced - existing),
                    orphan_schedule_ids=[row.id for row in inserted],
                ).error("Commit aborted after schedules were stored")
                raise NotFoundError(
                    "One or more groups do not exist or do not belong to this scheduled area"
                )

        group_rows: list[ScheduleGroupRecord] = []
        team_rows: list[ScheduleTeamRecord] = []
        assignment_rows: list[TeamAssignmentRecord] = []
        member_rows: list[MemberRecord] = []
        for item, row in pairs:
            seen_people: set[str] = set()
            for group in item.groups or []:
                group_rows.append(
                    ScheduleGroupRecord(id=new_id(), schedule_id=row.id, group_id=group.id)
                )
                for member in group.members:
                    if member.person_id in seen_people or not member.responsibilities:
                        continue
                    seen_people.add(member.person_id)
                    member_rows.append(
                        MemberRecord(
                            id=new_id(),
                            schedule_id=row.id,
                            person_id=member.person_id,
                            responsibility_id=member.responsibilities[0].id,
                            created_at=now,
                        )
                    )
            if item.team is not None:
                team_rows.append(
                    ScheduleTeamRecord(id=new_id(), schedule_id=row.id, team_id=item.team.id)
                )
            for assignment in item.assignments or []:
                if not assignment.person_id:
                    continue
                assignment_rows.append(
                    TeamAssignmentRecord(
                        id=new_id(),
                        schedule_id=row.id,
                        person_id=assignment.person_id,
                        team_role_id=assignment.role_id,
                        created_at=now,
                    )
                )

        self._schedules.insert_schedule_groups(group_rows)
        self._schedules.insert_schedule_teams(team_rows)
        self._schedules.insert_team_assignments(assignment_rows)
        self._schedules.insert_members(member_rows)

        count = self._schedules.count_schedules(generation.id)
        self._schedules.set_generation_count(generation.id, count)
        log.bind(schedules=count, previewed=len(preview.schedules)).info(
            "Schedule generation committed"
        )

        generation = replace(generation, total_schedules_generated=count)
        return PersistedGeneration(
            **_generation_response(generation).model_dump(),
            schedules=self._details_from_preview(pairs, assignment_rows, member_rows),
        )

    def _details_from_preview(
        self,
        pairs: list[tuple[SchedulePreview, ScheduleRecord]],
        assignment_rows: list[TeamAssignmentRecord],
        member_rows: list[MemberRecord],
    ) -> list[ScheduleDetails]:
        details = []
        for item, row in pairs:
            names: dict[str, str] = {}
            responsibilities: dict[str, str] = {}
            for group in item.groups or []:
                for member in group.members:
                    names[member.person_id] = member.person_name
                    for responsibility in member.responsibilities:
                        responsibilities[responsibility.id] = responsibility.name
            role_names: dict[tuple[str, str], str | None] = {}
            for assignment in item.assignments or []:
                names.setdefault(assignment.person_id, assignment.person_name or "")
                role_names[(assignment.person_id, assignment.role_id)] = assignment.role_name

            members = [
                ScheduleMemberInfo(
                    id=member.id,
                    person_id=member.person_id,
                    person_name=names.get(member.person_id),
                    responsibility_id=member.responsibility_id,
                    responsibility_name=responsibilities.get(member.responsibility_id),
                    status=member.status,
                    present=member.present,
                    created_at=member.created_at,
                )
                for member in member_rows
                if member.schedule_id == row.id
            ]
            assignments = [
                TeamAssignmentInfo(
                    id=assignment.id,
                    person_id=assignment.person_id,
                    person_name=names.get(assignment.person_id),
                    team_role_id=assignment.team_role_id,
                    role_name=role_names.get((assignment.person_id, assignment.team_role_id)),
                )
                for assignment in assignment_rows
                if assignment.schedule_id == row.id
            ]
            details.append(
                ScheduleDetails(
                    id=row.id,
                    schedule_generation_id=row.schedule_generation_id,
                    scheduled_area_id=row.scheduled_area_id,
                    start_datetime=row.start_datetime,
                    end_datetime=row.end_datetime,
                    schedule_type=row.schedule_type,
                    status=row.status,
                    participants_count=len(members) + len(assignments),
                    groups=item.groups or [],
                    team=item.team,
                    assignments=assignments,
                    members=members,
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                )
            )
        return details


def _generation_response(record: GenerationRecord) -> ScheduleGenerationResponse:
    return ScheduleGenerationResponse(
        id=record.id,
        scheduled_area_id=record.scheduled_area_id,
        generation_type=record.generation_type,
        period_type=record.period_type,
        period_start_date=record.period_start_date,
        period_end_date=record.period_end_date,
        configuration=record.configuration,
        total_schedules_generated=record.total_schedules_generated,
        created_by=record.created_by,
        created_at=record.created_at,
    )


class GenerationQueries:
    """Listing, lookup and deletion of stored generations."""

    def __init__(
        self,
        directory: DirectoryRepository,
        schedules: ScheduleRepository,
        logs: ScheduleLogRepository,
        service: ScheduleService,
    ) -> None:
        self._directory = directory
        self._schedules = schedules
        self._logs = logs
        self._service = service

    def _require_area(self, area_id: str) -> None:
        if self._directory.get_area(area_id) is None:
            raise NotFoundError(AREA_NOT_FOUND)

    def list_generations(
        self, area_id: str, page: int = 1, limit: int = 10
    ) -> PaginatedScheduleGenerations:
        self._require_area(area_id)
        page, limit, offset = page_window(page, limit)
        records, total = self._schedules.list_generations(area_id, offset=offset, limit=limit)
        return PaginatedScheduleGenerations(
            data=[_generation_response(record) for record in records],
            meta=PaginationMeta(
                page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
            ),
        )

    def get_generation(self, area_id: str, generation_id: str) -> PersistedGeneration:
        self._require_area(area_id)
        record = self._schedules.get_generation(area_id, generation_id)
        if record is None:
            raise NotFoundError(GENERATION_NOT_FOUND)
        schedules = self._schedules.list_schedules(generation_id)
        return PersistedGeneration(
            **_generation_response(record).model_dump(),
            schedules=self._service.build_details(area_id, schedules),
        )

    def delete_generation(self, area_id: str, generation_id: str) -> None:
        self._require_area(area_id)
        schedule_ids = self._schedules.delete_generation(area_id, generation_id)
        if schedule_ids is None:
            raise NotFoundError(GENERATION_NOT_FOUND)
        self._logs.delete_for_schedules(schedule_ids)
        logger.bind(area_id=area_id, generation_id=generation_id).info(
            "Schedule generation deleted with {} schedules", len(schedule_ids)
        )


__all__ = [
    "CommitExecutor",
    "GenerationQueries",
    "PreviewBuilder",
    "schedule_type_for",
    "summarize",
]
