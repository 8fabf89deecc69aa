"""Service helpers for reading and mutating individual schedules."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from .config import get_settings
from .directory import DirectoryRepository, Group
from .errors import InvalidConfigurationError, NotFoundError
from .logs import ChangeLogRecorder
from .schedules import (
    MemberRecord,
    ScheduleFilter,
    ScheduleGroupRecord,
    ScheduleRecord,
    ScheduleRepository,
    ScheduleTeamRecord,
    TeamAssignmentRecord,
)
from .schemas import (
    GroupMemberPreview,
    GroupPreview,
    PaginatedSchedules,
    PaginationMeta,
    ResponsibilityInfo,
    ScheduleCreateRequest,
    ScheduleDetails,
    ScheduleMemberCreateRequest,
    ScheduleMemberInfo,
    ScheduleMemberUpdateRequest,
    ScheduleSummary,
    ScheduleUpdateRequest,
    TeamAssignmentCreateRequest,
    TeamAssignmentInfo,
    TeamPreview,
)
from .utils import as_utc, logger, new_id, page_window, total_pages, utc_now

SCHEDULE_NOT_FOUND = "Schedule not found"


def group_preview(group: Group) -> GroupPreview:
    return GroupPreview(
        id=group.id,
        name=group.name,
        members=[
            GroupMemberPreview(
                person_id=member.person.id,
                person_name=member.person.full_name,
                person_photo_url=member.person.photo_url,
                responsibilities=[
                    ResponsibilityInfo(
                        id=responsibility.id,
                        name=responsibility.name,
                        image_url=responsibility.image_url,
                    )
                    for responsibility in member.responsibilities
                ],
            )
            for member in group.members
        ],
    )


class ScheduleService:
    """Reads schedule details and applies audited changes to them."""

    def __init__(
        self,
        directory: DirectoryRepository,
        schedules: ScheduleRepository,
        recorder: ChangeLogRecorder,
        *,
        timezone: str | None = None,
    ) -> None:
        self._directory = directory
        self._schedules = schedules
        self._recorder = recorder
        self._timezone = timezone or get_settings().timezone

    # Reads ------------------------------------------------------------------

    def require_schedule(self, area_id: str, schedule_id: str) -> ScheduleRecord:
        record = self._schedules.get_schedule(area_id, schedule_id)
        if record is None:
            raise NotFoundError(SCHEDULE_NOT_FOUND)
        return record

    def get_schedule(self, area_id: str, schedule_id: str) -> ScheduleDetails:
        record = self.require_schedule(area_id, schedule_id)
        return self.build_details(area_id, [record])[0]

    def build_details(
        self, area_id: str, records: Sequence[ScheduleRecord]
    ) -> list[ScheduleDetails]:
        """Assemble details for several schedules with one query per relation."""
        if not records:
            return []
        schedule_ids = [record.id for record in records]
        group_rows = self._schedules.list_schedule_groups(schedule_ids)
        team_rows = self._schedules.list_schedule_teams(schedule_ids)
        assignment_rows = self._schedules.list_team_assignments(schedule_ids)
        member_rows = self._schedules.list_members(schedule_ids)

        groups = {
            group.id: group
            for group in self._directory.get_groups_with_members(
                area_id, [row.group_id for row in group_rows]
            )
        }
        persons = self._directory.get_persons(
            [row.person_id for row in assignment_rows]
            + [row.person_id for row in member_rows]
        )
        teams = {row.schedule_id: self._directory.get_team(row.team_id) for row in team_rows}

        details = []
        for record in records:
            schedule_groups = [
                group_preview(groups[row.group_id])
                for row in group_rows
                if row.schedule_id == record.id and row.group_id in groups
            ]
            team = teams.get(record.id)
            assignments = [
                self._assignment_info(row, persons)
                for row in assignment_rows
                if row.schedule_id == record.id
            ]
            members = [
                self._member_info(row, persons)
                for row in member_rows
                if row.schedule_id == record.id
            ]
            details.append(
                ScheduleDetails(
                    id=record.id,
                    schedule_generation_id=record.schedule_generation_id,
                    scheduled_area_id=record.scheduled_area_id,
                    start_datetime=record.start_datetime,
                    end_datetime=record.end_datetime,
                    schedule_type=record.schedule_type,
                    status=record.status,
                    participants_count=len(members) + len(assignments),
                    groups=schedule_groups,
                    team=TeamPreview(id=team.id, name=team.name) if team else None,
                    assignments=assignments,
                    members=members,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
        return details

    def _assignment_info(
        self, row: TeamAssignmentRecord, persons: dict[str, Any]
    ) -> TeamAssignmentInfo:
        person = persons.get(row.person_id)
        role = self._directory.get_team_role(row.team_role_id)
        responsibility = (
            self._directory.get_responsibility(role.responsibility_id) if role else None
        )
        return TeamAssignmentInfo(
            id=row.id,
            person_id=row.person_id,
            person_name=person.full_name if person else None,
            team_role_id=row.team_role_id,
            role_name=responsibility.name if responsibility else None,
        )

    def _member_info(self, row: MemberRecord, persons: dict[str, Any]) -> ScheduleMemberInfo:
        person = persons.get(row.person_id)
        responsibility = self._directory.get_responsibility(row.responsibility_id)
        return ScheduleMemberInfo(
            id=row.id,
            person_id=row.person_id,
            person_name=person.full_name if person else None,
            responsibility_id=row.responsibility_id,
            responsibility_name=responsibility.name if responsibility else None,
            status=row.status,
            present=row.present,
            created_at=row.created_at,
        )

    # Listing, manual creation and deletion ----------------------------------

    def _require_area(self, area_id: str) -> None:
        if self._directory.get_area(area_id) is None:
            raise NotFoundError("Scheduled area not found")

    def list_schedules(
        self,
        area_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        schedule_generation_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        person_id: str | None = None,
        group_id: str | None = None,
        team_id: str | None = None,
        status: str | None = None,
    ) -> PaginatedSchedules:
        """Return one page of an area's schedules, earliest first.

        ``start_date`` and ``end_date`` are calendar days in the configured
        timezone; both bounds are inclusive.
        """
        self._require_area(area_id)
        if start_date and end_date and end_date < start_date:
            raise InvalidConfigurationError("endDate must be on or after startDate")
        zone = ZoneInfo(self._timezone)
        filters = ScheduleFilter(
            schedule_generation_id=schedule_generation_id,
            starts_from=(
                datetime.combine(start_date, time(0, 0), tzinfo=zone) if start_date else None
            ),
            ends_before=(
                datetime.combine(end_date + timedelta(days=1), time(0, 0), tzinfo=zone)
                if end_date
                else None
            ),
            person_id=person_id,
            group_id=group_id,
            team_id=team_id,
            status=status,
        )
        page, limit, offset = page_window(page, limit)
        records, total = self._schedules.list_area_schedules(
            area_id, filters, offset=offset, limit=limit
        )

        schedule_ids = [record.id for record in records]
        counts: dict[str, int] = {}
        for row in (
            *self._schedules.list_members(schedule_ids),
            *self._schedules.list_team_assignments(schedule_ids),
        ):
            counts[row.schedule_id] = counts.get(row.schedule_id, 0) + 1

        return PaginatedSchedules(
            data=[
                ScheduleSummary(
                    id=record.id,
                    schedule_generation_id=record.schedule_generation_id,
                    scheduled_area_id=record.scheduled_area_id,
                    start_datetime=record.start_datetime,
                    end_datetime=record.end_datetime,
                    schedule_type=record.schedule_type,
                    status=record.status,
                    participants_count=counts.get(record.id, 0),
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
                for record in records
            ],
            meta=PaginationMeta(
                page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
            ),
        )

    def _check_manual_payload(self, area_id: str, payload: ScheduleCreateRequest) -> None:
        if as_utc(payload.end_datetime) <= as_utc(payload.start_datetime):
            raise InvalidConfigurationError("endDatetime must be after startDatetime")

        if payload.schedule_type == "group":
            if not payload.group_ids:
                raise InvalidConfigurationError("groupIds is required for group schedule type")
            wanted = set(payload.group_ids)
            if self._directory.existing_group_ids(area_id, wanted) != wanted:
                raise NotFoundError(
                    "One or more groups do not exist or do not belong to this scheduled area"
                )
        elif payload.schedule_type == "team":
            if not payload.team_id:
                raise InvalidConfigurationError("teamId is required for team schedule type")
            if not payload.assignments:
                raise InvalidConfigurationError(
                    "assignments is required for team schedule type"
                )
            team = self._directory.get_team(payload.team_id)
            if team is None or team.scheduled_area_id != area_id:
                raise NotFoundError("Team not found or not associated with the scheduled area")
            for assignment in payload.assignments:
                self._require_person_in_area(area_id, assignment.person_id)
                role = self._directory.get_team_role(assignment.team_role_id)
                if role is None or role.team_id != team.id:
                    raise NotFoundError("Team role not found or not part of the team")
        else:
            if not payload.members:
                raise InvalidConfigurationError(
                    "members is required for individual schedule type"
                )
            people = [member.person_id for member in payload.members]
            if len(set(people)) != len(people):
                raise InvalidConfigurationError("members must not repeat a person")
            for member in payload.members:
                self._require_person_in_area(area_id, member.person_id)
                self._require_responsibility_in_area(area_id, member.responsibility_id)

    def create_schedule(
        self, area_id: str, payload: ScheduleCreateRequest
    ) -> ScheduleDetails:
        """Store a hand-made schedule that belongs to no generation."""
        self._require_area(area_id)
        self._check_manual_payload(area_id, payload)

        now = utc_now()
        record = self._schedules.insert_schedules(
            [
                ScheduleRecord(
                    id=new_id(),
                    schedule_generation_id=None,
                    scheduled_area_id=area_id,
                    start_datetime=as_utc(payload.start_datetime),
                    end_datetime=as_utc(payload.end_datetime),
                    schedule_type=payload.schedule_type,
                    created_at=now,
                    updated_at=now,
                )
            ]
        )[0]

        if payload.schedule_type == "group":
            self._schedules.insert_schedule_groups(
                [
                    ScheduleGroupRecord(id=new_id(), schedule_id=record.id, group_id=group_id)
                    for group_id in dict.fromkeys(payload.group_ids)
                ]
            )
        elif payload.schedule_type == "team":
            self._schedules.insert_schedule_teams(
                [ScheduleTeamRecord(id=new_id(), schedule_id=record.id, team_id=payload.team_id)]
            )
            self._schedules.insert_team_assignments(
                [
                    TeamAssignmentRecord(
                        id=new_id(),
                        schedule_id=record.id,
                        person_id=assignment.person_id,
                        team_role_id=assignment.team_role_id,
                        created_at=now,
                    )
                    for assignment in payload.assignments
                ]
            )
        else:
            self._schedules.insert_members(
                [
                    MemberRecord(
                        id=new_id(),
                        schedule_id=record.id,
                        person_id=member.person_id,
                        responsibility_id=member.responsibility_id,
                        created_at=now,
                    )
                    for member in payload.members
                ]
            )

        logger.bind(area_id=area_id, schedule_id=record.id).info(
            "Manual {} schedule created", payload.schedule_type
        )
        return self.build_details(area_id, [record])[0]

    def delete_schedule(self, area_id: str, schedule_id: str) -> None:
        existing = self.require_schedule(area_id, schedule_id)
        if existing.schedule_generation_id:
            raise InvalidConfigurationError(
                "Cannot delete automatically generated schedule. "
                "Delete the schedule generation instead."
            )
        if not self._schedules.delete_schedule(area_id, schedule_id):
            raise NotFoundError(SCHEDULE_NOT_FOUND)
        self._recorder.discard([schedule_id])
        logger.bind(area_id=area_id, schedule_id=schedule_id).info("Manual schedule deleted")

    # Schedule updates -------------------------------------------------------

    def update_schedule(
        self,
        area_id: str,
        schedule_id: str,
        payload: ScheduleUpdateRequest,
        actor_id: str | None = None,
    ) -> ScheduleDetails:
        existing = self.require_schedule(area_id, schedule_id)
        changes = payload.model_fields_set

        if existing.schedule_generation_id and (
            payload.start_datetime is not None or payload.end_datetime is not None
        ):
            raise InvalidConfigurationError(
                "Cannot update startDatetime or endDatetime for automatically "
                "generated schedules"
            )

        start = as_utc(payload.start_datetime or existing.start_datetime)
        end = as_utc(payload.end_datetime or existing.end_datetime)
        if end <= start:
            raise InvalidConfigurationError("endDatetime must be after startDatetime")

        new_team_id: str | None = None
        current_team_id: str | None = None
        team_requested = "team_id" in changes
        if team_requested:
            new_team_id = payload.team_id
            if new_team_id:
                team = self._directory.get_team(new_team_id)
                if team is None or team.scheduled_area_id != area_id:
                    raise NotFoundError(
                        "Team not found or not associated with the scheduled area"
                    )
            current = self._schedules.list_schedule_teams([schedule_id])
            current_team_id = current[0].team_id if current else None

        status = payload.status or existing.status
        updated = replace(existing, start_datetime=start, end_datetime=end, status=status)
        if updated != existing:
            updated = self._schedules.save_schedule(replace(updated, updated_at=utc_now()))

        if start != as_utc(existing.start_datetime):
            self._recorder.record(
                schedule_id,
                "schedule_start_date_changed",
                old_value={"startDatetime": as_utc(existing.start_datetime).isoformat()},
                new_value={"startDatetime": start.isoformat()},
                actor_id=actor_id,
            )
        if end != as_utc(existing.end_datetime):
            self._recorder.record(
                schedule_id,
                "schedule_end_date_changed",
                old_value={"endDatetime": as_utc(existing.end_datetime).isoformat()},
                new_value={"endDatetime": end.isoformat()},
                actor_id=actor_id,
            )
        if status != existing.status:
            self._recorder.record(
                schedule_id,
                "schedule_status_changed",
                old_value={"status": existing.status},
                new_value={"status": status},
                actor_id=actor_id,
            )
        if team_requested and new_team_id != current_team_id:
            self._schedules.set_schedule_team(
                schedule_id,
                ScheduleTeamRecord(id=new_id(), schedule_id=schedule_id, team_id=new_team_id)
                if new_team_id
                else None,
            )
            self._recorder.record(
                schedule_id,
                "team_changed",
                old_value={"teamId": current_team_id},
                new_value={"teamId": new_team_id},
                actor_id=actor_id,
            )

        logger.bind(schedule_id=schedule_id, area_id=area_id).info("Schedule updated")
        return self.build_details(area_id, [updated])[0]

    # Members ----------------------------------------------------------------

    def _require_person_in_area(self, area_id: str, person_id: str) -> None:
        if not self._directory.person_in_area(area_id, person_id):
            raise NotFoundError("Person not found or not associated with the scheduled area")

    def _require_responsibility_in_area(self, area_id: str, responsibility_id: str) -> None:
        responsibility = self._directory.get_responsibility(responsibility_id)
        if responsibility is None or responsibility.scheduled_area_id != area_id:
            raise NotFoundError(
                "Responsibility not found or not associated with the scheduled area"
            )

    def add_member(
        self,
        area_id: str,
        schedule_id: str,
        payload: ScheduleMemberCreateRequest,
        actor_id: str | None = None,
    ) -> ScheduleMemberInfo:
        self.require_schedule(area_id, schedule_id)
        self._require_person_in_area(area_id, payload.person_id)
        self._require_responsibility_in_area(area_id, payload.responsibility_id)

        member = self._schedules.add_member(
            MemberRecord(
                id=new_id(),
                schedule_id=schedule_id,
                person_id=payload.person_id,
                responsibility_id=payload.responsibility_id,
                created_at=utc_now(),
            )
        )
        self._recorder.record(
            schedule_id,
            "member_added",
            member_id=member.id,
            person_id=member.person_id,
            new_value={
                "personId": member.person_id,
                "responsibilityId": member.responsibility_id,
                "status": member.status,
                "present": member.present,
            },
            actor_id=actor_id,
        )
        logger.bind(schedule_id=schedule_id, person_id=member.person_id).info(
            "Schedule member added"
        )
        return self._member_info(member, self._directory.get_persons([member.person_id]))

    def update_member(
        self,
        area_id: str,
        schedule_id: str,
        member_id: str,
        payload: ScheduleMemberUpdateRequest,
        actor_id: str | None = None,
    ) -> ScheduleMemberInfo:
        self.require_schedule(area_id, schedule_id)
        existing = self._schedules.get_member(schedule_id, member_id)
        if existing is None:
            raise NotFoundError("Schedule member not found")
        if payload.responsibility_id:
            self._require_responsibility_in_area(area_id, payload.responsibility_id)

        provided = payload.model_fields_set
        changed: list[tuple[str, str, Any, Any]] = []
        if (
            payload.responsibility_id is not None
            and payload.responsibility_id != existing.responsibility_id
        ):
            changed.append(
                (
                    "member_responsibility_changed",
                    "responsibilityId",
                    existing.responsibility_id,
                    payload.responsibility_id,
                )
            )
        if payload.status is not None and payload.status != existing.status:
            changed.append(("member_status_changed", "status", existing.status, payload.status))
        if "present" in provided and payload.present != existing.present:
            changed.append(
                ("member_present_changed", "present", existing.present, payload.present)
            )

        if not changed:
            return self._member_info(existing, self._directory.get_persons([existing.person_id]))

        updated = replace(
            existing,
            responsibility_id=payload.responsibility_id or existing.responsibility_id,
            status=payload.status or existing.status,
            present=payload.present if "present" in provided else existing.present,
        )
        self._schedules.save_member(updated)
        for change_type, key, old, new in changed:
            self._recorder.record(
                schedule_id,
                change_type,
                member_id=member_id,
                person_id=existing.person_id,
                old_value={key: old},
                new_value={key: new},
                actor_id=actor_id,
            )
        return self._member_info(updated, self._directory.get_persons([updated.person_id]))

    def remove_member(
        self,
        area_id: str,
        schedule_id: str,
        member_id: str,
        actor_id: str | None = None,
    ) -> None:
        self.require_schedule(area_id, schedule_id)
        existing = self._schedules.get_member(schedule_id, member_id)
        if existing is None or not self._schedules.delete_member(schedule_id, member_id):
            raise NotFoundError("Schedule member not found")
        self._recorder.record(
            schedule_id,
            "member_removed",
            member_id=member_id,
            person_id=existing.person_id,
            old_value={
                "personId": existing.person_id,
                "responsibilityId": existing.responsibility_id,
                "status": existing.status,
                "present": existing.present,
            },
            actor_id=actor_id,
        )

    # Team assignments -------------------------------------------------------

    def add_team_assignment(
        self,
        area_id: str,
        schedule_id: str,
        payload: TeamAssignmentCreateRequest,
        actor_id: str | None = None,
    ) -> TeamAssignmentInfo:
        self.require_schedule(area_id, schedule_id)
        self._require_person_in_area(area_id, payload.person_id)
        role = self._directory.get_team_role(payload.team_role_id)
        team = self._directory.get_team(role.team_id) if role else None
        if team is None or team.scheduled_area_id != area_id:
            raise NotFoundError("Team role not found or not associated with the scheduled area")

        row = TeamAssignmentRecord(
            id=new_id(),
            schedule_id=schedule_id,
            person_id=payload.person_id,
            team_role_id=payload.team_role_id,
            created_at=utc_now(),
        )
        self._schedules.insert_team_assignments([row])
        self._recorder.record(
            schedule_id,
            "team_member_added",
            person_id=payload.person_id,
            new_value={"personId": payload.person_id, "teamRoleId": payload.team_role_id},
            actor_id=actor_id,
        )
        return self._assignment_info(row, self._directory.get_persons([row.person_id]))

    def remove_team_assignment(
        self,
        area_id: str,
        schedule_id: str,
        assignment_id: str,
        actor_id: str | None = None,
    ) -> None:
        self.require_schedule(area_id, schedule_id)
        existing = next(
            (
                row
                for row in self._schedules.list_team_assignments([schedule_id])
                if row.id == assignment_id
            ),
            None,
        )
        if existing is None or not self._schedules.delete_team_assignment(
            schedule_id, assignment_id
        ):
            raise NotFoundError("Team assignment not found")
        self._recorder.record(
            schedule_id,
            "team_member_removed",
            person_id=existing.person_id,
            old_value={"personId": existing.person_id, "teamRoleId": existing.team_role_id},
            actor_id=actor_id,
        )


__all__ = ["ScheduleService", "group_preview"]
