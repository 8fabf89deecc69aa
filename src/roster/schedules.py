"""Repositories for generations, schedules, and their relationship rows."""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from threading import Lock
from typing import Any, Protocol

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .database import get_engine, get_session_factory, is_database_configured
from .db_models import (
    ScheduleGenerationModel,
    ScheduleGroupModel,
    ScheduleLogModel,
    ScheduleMemberModel,
    ScheduleModel,
    ScheduleTeamAssignmentModel,
    ScheduleTeamModel,
)
from .errors import ConflictError
from .utils import as_utc

# Records ---------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationRecord:
    id: str
    scheduled_area_id: str
    generation_type: str
    period_type: str
    period_start_date: date
    period_end_date: date
    configuration: dict[str, Any]
    created_at: datetime
    total_schedules_generated: int = 0
    created_by: str | None = None


@dataclass(frozen=True)
class ScheduleRecord:
    id: str
    schedule_generation_id: str | None
    scheduled_area_id: str
    start_datetime: datetime
    end_datetime: datetime
    schedule_type: str
    created_at: datetime
    updated_at: datetime
    status: str = "pending"


@dataclass(frozen=True)
class ScheduleGroupRecord:
    id: str
    schedule_id: str
    group_id: str


@dataclass(frozen=True)
class ScheduleTeamRecord:
    id: str
    schedule_id: str
    team_id: str


@dataclass(frozen=True)
class TeamAssignmentRecord:
    id: str
    schedule_id: str
    person_id: str
    team_role_id: str
    created_at: datetime


@dataclass(frozen=True)
class MemberRecord:
    id: str
    schedule_id: str
    person_id: str
    responsibility_id: str
    created_at: datetime
    status: str = "pending"
    present: bool | None = None


@dataclass(frozen=True)
class ScheduleFilter:
    """Optional criteria for listing the schedules of an area.

    ``starts_from`` and ``ends_before`` bound the window: a schedule matches
    when it starts at or after the first and ends strictly before the second.
    ``person_id`` matches both members and team assignments.
    """

    schedule_generation_id: str | None = None
    starts_from: datetime | None = None
    ends_before: datetime | None = None
    person_id: str | None = None
    group_id: str | None = None
    team_id: str | None = None
    status: str | None = None


class ScheduleRepository(Protocol):
    """Storage abstraction for generated schedules and their links."""

    def insert_generation(self, record: GenerationRecord) -> GenerationRecord:
        ...

    def set_generation_count(self, generation_id: str, count: int) -> None:
        ...

    def list_generations(
        self, area_id: str, *, offset: int, limit: int
    ) -> tuple[list[GenerationRecord], int]:
        ...

    def get_generation(self, area_id: str, generation_id: str) -> GenerationRecord | None:
        ...

    def delete_generation(self, area_id: str, generation_id: str) -> list[str] | None:
        ...

    def insert_schedules(self, records: Sequence[ScheduleRecord]) -> list[ScheduleRecord]:
        ...

    def count_schedules(self, generation_id: str) -> int:
        ...

    def list_schedules(self, generation_id: str) -> list[ScheduleRecord]:
        ...

    def list_area_schedules(
        self, area_id: str, filters: ScheduleFilter, *, offset: int, limit: int
    ) -> tuple[list[ScheduleRecord], int]:
        ...

    def get_schedule(self, area_id: str, schedule_id: str) -> ScheduleRecord | None:
        ...

    def save_schedule(self, record: ScheduleRecord) -> ScheduleRecord:
        ...

    def delete_schedule(self, area_id: str, schedule_id: str) -> bool:
        ...

    def insert_schedule_groups(self, rows: Sequence[ScheduleGroupRecord]) -> None:
        ...

    def insert_schedule_teams(self, rows: Sequence[ScheduleTeamRecord]) -> None:
        ...

    def insert_team_assignments(self, rows: Sequence[TeamAssignmentRecord]) -> None:
        ...

    def insert_members(self, rows: Sequence[MemberRecord]) -> None:
        ...

    def list_schedule_groups(self, schedule_ids: Iterable[str]) -> list[ScheduleGroupRecord]:
        ...

    def list_schedule_teams(self, schedule_ids: Iterable[str]) -> list[ScheduleTeamRecord]:
        ...

    def set_schedule_team(self, schedule_id: str, row: ScheduleTeamRecord | None) -> None:
        ...

    def list_team_assignments(
        self, schedule_ids: Iterable[str]
    ) -> list[TeamAssignmentRecord]:
        ...

    def delete_team_assignment(self, schedule_id: str, assignment_id: str) -> bool:
        ...

    def list_members(self, schedule_ids: Iterable[str]) -> list[MemberRecord]:
        ...

    def get_member(self, schedule_id: str, member_id: str) -> MemberRecord | None:
        ...

    def add_member(self, record: MemberRecord) -> MemberRecord:
        ...

    def save_member(self, record: MemberRecord) -> MemberRecord:
        ...

    def delete_member(self, schedule_id: str, member_id: str) -> bool:
        ...


# In-memory adapter -----------------------------------------------------------


def _utc_schedule(record: ScheduleRecord) -> ScheduleRecord:
    return replace(
        record,
        start_datetime=as_utc(record.start_datetime),
        end_datetime=as_utc(record.end_datetime),
    )


@dataclass
class _ScheduleState:
    generations: dict[str, GenerationRecord] = field(default_factory=dict)
    schedules: dict[str, ScheduleRecord] = field(default_factory=dict)
    groups: dict[str, ScheduleGroupRecord] = field(default_factory=dict)
    teams: dict[str, ScheduleTeamRecord] = field(default_factory=dict)
    assignments: dict[str, TeamAssignmentRecord] = field(default_factory=dict)
    members: dict[str, MemberRecord] = field(default_factory=dict)


class InMemoryScheduleRepository(ScheduleRepository):
    """Schedule store used when no database is configured."""

    def __init__(self) -> None:
        self._state = _ScheduleState()
        self._lock = Lock()

    def insert_generation(self, record: GenerationRecord) -> GenerationRecord:
        with self._lock:
            self._state.generations[record.id] = record
            return record

    def set_generation_count(self, generation_id: str, count: int) -> None:
        with self._lock:
            record = self._state.generations.get(generation_id)
            if record is not None:
                self._state.generations[generation_id] = replace(
                    record, total_schedules_generated=count
                )

    def list_generations(
        self, area_id: str, *, offset: int, limit: int
    ) -> tuple[list[GenerationRecord], int]:
        matches = sorted(
            (
                record
                for record in self._state.generations.values()
                if record.scheduled_area_id == area_id
            ),
            key=lambda record: record.created_at,
            reverse=True,
        )
        return matches[offset : offset + limit], len(matches)

    def get_generation(self, area_id: str, generation_id: str) -> GenerationRecord | None:
        record = self._state.generations.get(generation_id)
        if record is None or record.scheduled_area_id != area_id:
            return None
        return record

    def delete_generation(self, area_id: str, generation_id: str) -> list[str] | None:
        with self._lock:
            record = self._state.generations.get(generation_id)
            if record is None or record.scheduled_area_id != area_id:
                return None
            del self._state.generations[generation_id]
            schedule_ids = [
                schedule.id
                for schedule in self._state.schedules.values()
                if schedule.schedule_generation_id == generation_id
            ]
            self._drop_schedules(schedule_ids)
            return schedule_ids

    def _drop_schedules(self, schedule_ids: Iterable[str]) -> None:
        doomed = set(schedule_ids)
        for schedule_id in doomed:
            self._state.schedules.pop(schedule_id, None)
        for table in (
            self._state.groups,
            self._state.teams,
            self._state.assignments,
            self._state.members,
        ):
            for row_id in [row_id for row_id, row in table.items() if row.schedule_id in doomed]:
                del table[row_id]

    def insert_schedules(self, records: Sequence[ScheduleRecord]) -> list[ScheduleRecord]:
        with self._lock:
            stored = [_utc_schedule(record) for record in records]
            for record in stored:
                self._state.schedules[record.id] = record
            return stored

    def count_schedules(self, generation_id: str) -> int:
        return sum(
            1
            for schedule in self._state.schedules.values()
            if schedule.schedule_generation_id == generation_id
        )

    def list_schedules(self, generation_id: str) -> list[ScheduleRecord]:
        return sorted(
            (
                schedule
                for schedule in self._state.schedules.values()
                if schedule.schedule_generation_id == generation_id
            ),
            key=lambda schedule: schedule.start_datetime,
        )

    def _matches(self, record: ScheduleRecord, filters: ScheduleFilter) -> bool:
        if (
            filters.schedule_generation_id
            and record.schedule_generation_id != filters.schedule_generation_id
        ):
            return False
        if filters.status and record.status != filters.status:
            return False
        if filters.starts_from and record.start_datetime < as_utc(filters.starts_from):
            return False
        if filters.ends_before and record.end_datetime >= as_utc(filters.ends_before):
            return False
        if filters.group_id and not any(
            row.schedule_id == record.id and row.group_id == filters.group_id
            for row in self._state.groups.values()
        ):
            return False
        if filters.team_id and not any(
            row.schedule_id == record.id and row.team_id == filters.team_id
            for row in self._state.teams.values()
        ):
            return False
        if filters.person_id and not any(
            row.schedule_id == record.id and row.person_id == filters.person_id
            for row in (*self._state.members.values(), *self._state.assignments.values())
        ):
            return False
        return True

    def list_area_schedules(
        self, area_id: str, filters: ScheduleFilter, *, offset: int, limit: int
    ) -> tuple[list[ScheduleRecord], int]:
        matches = sorted(
            (
                record
                for record in self._state.schedules.values()
                if record.scheduled_area_id == area_id and self._matches(record, filters)
            ),
            key=lambda record: (record.start_datetime, record.id),
        )
        return matches[offset : offset + limit], len(matches)

    def get_schedule(self, area_id: str, schedule_id: str) -> ScheduleRecord | None:
        record = self._state.schedules.get(schedule_id)
        if record is None or record.scheduled_area_id != area_id:
            return None
        return record

    def save_schedule(self, record: ScheduleRecord) -> ScheduleRecord:
        with self._lock:
            stored = _utc_schedule(record)
            self._state.schedules[record.id] = stored
            return stored

    def delete_schedule(self, area_id: str, schedule_id: str) -> bool:
        with self._lock:
            record = self._state.schedules.get(schedule_id)
            if record is None or record.scheduled_area_id != area_id:
                return False
            self._drop_schedules([schedule_id])
            return True

    def insert_schedule_groups(self, rows: Sequence[ScheduleGroupRecord]) -> None:
        with self._lock:
            for row in rows:
                self._state.groups[row.id] = row

    def insert_schedule_teams(self, rows: Sequence[ScheduleTeamRecord]) -> None:
        with self._lock:
            for row in rows:
                self._state.teams[row.id] = row

    def insert_team_assignments(self, rows: Sequence[TeamAssignmentRecord]) -> None:
        with self._lock:
            for row in rows:
                self._state.assignments[row.id] = row

    def insert_members(self, rows: Sequence[MemberRecord]) -> None:
        with self._lock:
            for row in rows:
                self._state.members[row.id] = row

    def list_schedule_groups(self, schedule_ids: Iterable[str]) -> list[ScheduleGroupRecord]:
        wanted = set(schedule_ids)
        return [row for row in self._state.groups.values() if row.schedule_id in wanted]

    def list_schedule_teams(self, schedule_ids: Iterable[str]) -> list[ScheduleTeamRecord]:
        wanted = set(schedule_ids)
        return [row for row in self._state.teams.values() if row.schedule_id in wanted]

    def set_schedule_team(self, schedule_id: str, row: ScheduleTeamRecord | None) -> None:
        with self._lock:
            for row_id in [
                row_id
                for row_id, existing in self._state.teams.items()
                if existing.schedule_id == schedule_id
            ]:
                del self._state.teams[row_id]
            if row is not None:
                self._state.teams[row.id] = row

    def list_team_assignments(
        self, schedule_ids: Iterable[str]
    ) -> list[TeamAssignmentRecord]:
        wanted = set(schedule_ids)
        return sorted(
            (row for row in self._state.assignments.values() if row.schedule_id in wanted),
            key=lambda row: row.created_at,
        )

    def delete_team_assignment(self, schedule_id: str, assignment_id: str) -> bool:
        with self._lock:
            row = self._state.assignments.get(assignment_id)
            if row is None or row.schedule_id != schedule_id:
                return False
            del self._state.assignments[assignment_id]
            return True

    def list_members(self, schedule_ids: Iterable[str]) -> list[MemberRecord]:
        wanted = set(schedule_ids)
        return sorted(
            (row for row in self._state.members.values() if row.schedule_id in wanted),
            key=lambda row: row.created_at,
        )

    def get_member(self, schedule_id: str, member_id: str) -> MemberRecord | None:
        row = self._state.members.get(member_id)
        if row is None or row.schedule_id != schedule_id:
            return None
        return row

    def add_member(self, record: MemberRecord) -> MemberRecord:
        with self._lock:
            for existing in self._state.members.values():
                if (
                    existing.schedule_id == record.schedule_id
                    and existing.person_id == record.person_id
                ):
                    raise ConflictError("Person is already a member of this schedule")
            self._state.members[record.id] = record
            return record

    def save_member(self, record: MemberRecord) -> MemberRecord:
        with self._lock:
            self._state.members[record.id] = record
            return record

    def delete_member(self, schedule_id: str, member_id: str) -> bool:
        with self._lock:
            row = self._state.members.get(member_id)
            if row is None or row.schedule_id != schedule_id:
                return False
            del self._state.members[member_id]
            return True


# SQLAlchemy adapter ----------------------------------------------------------


def _generation_from_model(row: ScheduleGenerationModel) -> GenerationRecord:
    return GenerationRecord(
        id=row.id,
        scheduled_area_id=row.scheduled_area_id,
        generation_type=row.generation_type,
        period_type=row.period_type,
        period_start_date=date.fromisoformat(row.period_start_date),
        period_end_date=date.fromisoformat(row.period_end_date),
        configuration=json.loads(row.configuration_json or "{}"),
        total_schedules_generated=row.total_schedules_generated,
        created_by=row.created_by,
        created_at=datetime.fromisoformat(row.created_at),
    )


def _schedule_to_model(record: ScheduleRecord) -> ScheduleModel:
    return ScheduleModel(
        id=record.id,
        schedule_generation_id=record.schedule_generation_id,
        scheduled_area_id=record.scheduled_area_id,
        start_datetime=as_utc(record.start_datetime).isoformat(),
        end_datetime=as_utc(record.end_datetime).isoformat(),
        schedule_type=record.schedule_type,
        status=record.status,
        created_at=record.created_at.isoformat(),
        updated_at=record.updated_at.isoformat(),
    )


def _schedule_from_model(row: ScheduleModel) -> ScheduleRecord:
    return ScheduleRecord(
        id=row.id,
        schedule_generation_id=row.schedule_generation_id,
        scheduled_area_id=row.scheduled_area_id,
        start_datetime=datetime.fromisoformat(row.start_datetime),
        end_datetime=datetime.fromisoformat(row.end_datetime),
        schedule_type=row.schedule_type,
        status=row.status,
        created_at=datetime.fromisoformat(row.created_at),
        updated_at=datetime.fromisoformat(row.updated_at),
    )


def _member_from_model(row: ScheduleMemberModel) -> MemberRecord:
    return MemberRecord(
        id=row.id,
        schedule_id=row.schedule_id,
        person_id=row.person_id,
        responsibility_id=row.responsibility_id,
        status=row.status,
        present=row.present,
        created_at=datetime.fromisoformat(row.created_at),
    )


def _member_to_model(record: MemberRecord) -> ScheduleMemberModel:
    return ScheduleMemberModel(
        id=record.id,
        schedule_id=record.schedule_id,
        person_id=record.person_id,
        responsibility_id=record.responsibility_id,
        status=record.status,
        present=record.present,
        created_at=record.created_at.isoformat(),
    )


def _assignment_from_model(row: ScheduleTeamAssignmentModel) -> TeamAssignmentRecord:
    return TeamAssignmentRecord(
        id=row.id,
        schedule_id=row.schedule_id,
        person_id=row.person_id,
        team_role_id=row.team_role_id,
        created_at=datetime.fromisoformat(row.created_at),
    )


def _delete_schedule_rows(session: Session, schedule_ids: Sequence[str]) -> None:
    # Explicit so the cascade holds even without SQLite foreign keys.
    if not schedule_ids:
        return
    for model in (
        ScheduleLogModel,
        ScheduleGroupModel,
        ScheduleTeamModel,
        ScheduleTeamAssignmentModel,
        ScheduleMemberModel,
    ):
        session.execute(delete(model).where(model.schedule_id.in_(schedule_ids)))
    session.execute(delete(ScheduleModel).where(ScheduleModel.id.in_(schedule_ids)))


def _schedule_conditions(area_id: str, filters: ScheduleFilter) -> list[Any]:
    conditions: list[Any] = [ScheduleModel.scheduled_area_id == area_id]
    if filters.schedule_generation_id:
        conditions.append(ScheduleModel.schedule_generation_id == filters.schedule_generation_id)
    if filters.status:
        conditions.append(ScheduleModel.status == filters.status)
    # Instants are stored as UTC ISO strings, which order lexically.
    if filters.starts_from:
        conditions.append(
            ScheduleModel.start_datetime >= as_utc(filters.starts_from).isoformat()
        )
    if filters.ends_before:
        conditions.append(ScheduleModel.end_datetime < as_utc(filters.ends_before).isoformat())
    if filters.group_id:
        conditions.append(
            ScheduleModel.id.in_(
                select(ScheduleGroupModel.schedule_id).where(
                    ScheduleGroupModel.group_id == filters.group_id
                )
            )
        )
    if filters.team_id:
        conditions.append(
            ScheduleModel.id.in_(
                select(ScheduleTeamModel.schedule_id).where(
                    ScheduleTeamModel.team_id == filters.team_id
                )
            )
        )
    if filters.person_id:
        conditions.append(
            or_(
                ScheduleModel.id.in_(
                    select(ScheduleMemberModel.schedule_id).where(
                        ScheduleMemberModel.person_id == filters.person_id
                    )
                ),
                ScheduleModel.id.in_(
                    select(ScheduleTeamAssignmentModel.schedule_id).where(
                        ScheduleTeamAssignmentModel.person_id == filters.person_id
                    )
                ),
            )
        )
    return conditions


class SQLScheduleRepository(ScheduleRepository):
    """SQLAlchemy-backed schedule repository."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def insert_generation(self, record: GenerationRecord) -> GenerationRecord:
        model = ScheduleGenerationModel(
            id=record.id,
            scheduled_area_id=record.scheduled_area_id,
            generation_type=record.generation_type,
            period_type=record.period_type,
            period_start_date=record.period_start_date.isoformat(),
            period_end_date=record.period_end_date.isoformat(),
            configuration_json=json.dumps(record.configuration),
            total_schedules_generated=record.total_schedules_generated,
            created_by=record.created_by,
            created_at=record.created_at.isoformat(),
        )
        with self._session_factory() as session:
            session.add(model)
            session.commit()
            session.refresh(model)
            return _generation_from_model(model)

    def set_generation_count(self, generation_id: str, count: int) -> None:
        with self._session_factory() as session:
            session.execute(
                update(ScheduleGenerationModel)
                .where(ScheduleGenerationModel.id == generation_id)
                .values(total_schedules_generated=count)
            )
            session.commit()

    def list_generations(
        self, area_id: str, *, offset: int, limit: int
    ) -> tuple[list[GenerationRecord], int]:
        with self._session_factory() as session:
            total = session.execute(
                select(func.count(ScheduleGenerationModel.id)).where(
                    ScheduleGenerationModel.scheduled_area_id == area_id
                )
            ).scalar_one()
            rows = (
                session.execute(
                    select(ScheduleGenerationModel)
                    .where(ScheduleGenerationModel.scheduled_area_id == area_id)
                    .order_by(ScheduleGenerationModel.created_at.desc())
                    .offset(offset)
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_generation_from_model(row) for row in rows], int(total)

    def get_generation(self, area_id: str, generation_id: str) -> GenerationRecord | None:
        with self._session_factory() as session:
            row = session.get(ScheduleGenerationModel, generation_id)
            if row is None or row.scheduled_area_id != area_id:
                return None
            return _generation_from_model(row)

    def delete_generation(self, area_id: str, generation_id: str) -> list[str] | None:
        with self._session_factory() as session:
            row = session.get(ScheduleGenerationModel, generation_id)
            if row is None or row.scheduled_area_id != area_id:
                return None
            schedule_ids = list(
                session.execute(
                    select(ScheduleModel.id).where(
                        ScheduleModel.schedule_generation_id == generation_id
                    )
                ).scalars()
            )
            _delete_schedule_rows(session, schedule_ids)
            session.delete(row)
            session.commit()
            return schedule_ids

    def insert_schedules(self, records: Sequence[ScheduleRecord]) -> list[ScheduleRecord]:
        if not records:
            return []
        models = [_schedule_to_model(record) for record in records]
        with self._session_factory() as session:
            session.add_all(models)
            session.commit()
        return [_utc_schedule(record) for record in records]

    def count_schedules(self, generation_id: str) -> int:
        with self._session_factory() as session:
            total = session.execute(
                select(func.count(ScheduleModel.id)).where(
                    ScheduleModel.schedule_generation_id == generation_id
                )
            ).scalar_one()
            return int(total)

    def list_schedules(self, generation_id: str) -> list[ScheduleRecord]:
        with self._session_factory() as session:
            rows = (
                session.execute(
                    select(ScheduleModel)
                    .where(ScheduleModel.schedule_generation_id == generation_id)
                    .order_by(ScheduleModel.start_datetime)
                )
                .scalars()
                .all()
            )
            return [_schedule_from_model(row) for row in rows]

    def list_area_schedules(
        self, area_id: str, filters: ScheduleFilter, *, offset: int, limit: int
    ) -> tuple[list[ScheduleRecord], int]:
        conditions = _schedule_conditions(area_id, filters)
        with self._session_factory() as session:
            total = session.execute(
                select(func.count(ScheduleModel.id)).where(*conditions)
            ).scalar_one()
            rows = (
                session.execute(
                    select(ScheduleModel)
                    .where(*conditions)
                    .order_by(ScheduleModel.start_datetime, ScheduleModel.id)
                    .offset(offset)
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_schedule_from_model(row) for row in rows], int(total)

    def get_schedule(self, area_id: str, schedule_id: str) -> ScheduleRecord | None:
        with self._session_factory() as session:
            row = session.get(ScheduleModel, schedule_id)
            if row is None or row.scheduled_area_id != area_id:
                return None
            return _schedule_from_model(row)

    def save_schedule(self, record: ScheduleRecord) -> ScheduleRecord:
        with self._session_factory() as session:
            model = session.merge(_schedule_to_model(record))
            session.commit()
            session.refresh(model)
            return _schedule_from_model(model)

    def delete_schedule(self, area_id: str, schedule_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(ScheduleModel, schedule_id)
            if row is None or row.scheduled_area_id != area_id:
                return False
            _delete_schedule_rows(session, [schedule_id])
            session.commit()
            return True

    def insert_schedule_groups(self, rows: Sequence[ScheduleGroupRecord]) -> None:
        if not rows:
            return
        with self._session_factory() as session:
            session.add_all(
                ScheduleGroupModel(id=row.id, schedule_id=row.schedule_id, group_id=row.group_id)
                for row in rows
            )
            session.commit()

    def insert_schedule_teams(self, rows: Sequence[ScheduleTeamRecord]) -> None:
        if not rows:
            return
        with self._session_factory() as session:
            session.add_all(
                ScheduleTeamModel(id=row.id, schedule_id=row.schedule_id, team_id=row.team_id)
                for row in rows
            )
            session.commit()

    def insert_team_assignments(self, rows: Sequence[TeamAssignmentRecord]) -> None:
        if not rows:
            return
        with self._session_factory() as session:
            session.add_all(
                ScheduleTeamAssignmentModel(
                    id=row.id,
                    schedule_id=row.schedule_id,
                    person_id=row.person_id,
                    team_role_id=row.team_role_id,
                    created_at=row.created_at.isoformat(),
                )
                for row in rows
            )
            session.commit()

    def insert_members(self, rows: Sequence[MemberRecord]) -> None:
        if not rows:
            return
        with self._session_factory() as session:
            session.add_all(_member_to_model(row) for row in rows)
            session.commit()

    def list_schedule_groups(self, schedule_ids: Iterable[str]) -> list[ScheduleGroupRecord]:
        ids = set(schedule_ids)
        if not ids:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(ScheduleGroupModel).where(ScheduleGroupModel.schedule_id.in_(ids))
            ).scalars()
            return [
                ScheduleGroupRecord(id=row.id, schedule_id=row.schedule_id, group_id=row.group_id)
                for row in rows
            ]

    def list_schedule_teams(self, schedule_ids: Iterable[str]) -> list[ScheduleTeamRecord]:
        ids = set(schedule_ids)
        if not ids:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(ScheduleTeamModel).where(ScheduleTeamModel.schedule_id.in_(ids))
            ).scalars()
            return [
                ScheduleTeamRecord(id=row.id, schedule_id=row.schedule_id, team_id=row.team_id)
                for row in rows
            ]

    def set_schedule_team(self, schedule_id: str, row: ScheduleTeamRecord | None) -> None:
        with self._session_factory() as session:
            session.execute(
                delete(ScheduleTeamModel).where(ScheduleTeamModel.schedule_id == schedule_id)
            )
            if row is not None:
                session.add(
                    ScheduleTeamModel(id=row.id, schedule_id=row.schedule_id, team_id=row.team_id)
                )
            session.commit()

    def list_team_assignments(
        self, schedule_ids: Iterable[str]
    ) -> list[TeamAssignmentRecord]:
        ids = set(schedule_ids)
        if not ids:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(ScheduleTeamAssignmentModel)
                .where(ScheduleTeamAssignmentModel.schedule_id.in_(ids))
                .order_by(ScheduleTeamAssignmentModel.created_at)
            ).scalars()
            return [_assignment_from_model(row) for row in rows]

    def delete_team_assignment(self, schedule_id: str, assignment_id: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                delete(ScheduleTeamAssignmentModel).where(
                    ScheduleTeamAssignmentModel.id == assignment_id,
                    ScheduleTeamAssignmentModel.schedule_id == schedule_id,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def list_members(self, schedule_ids: Iterable[str]) -> list[MemberRecord]:
        ids = set(schedule_ids)
        if not ids:
            return []
        with self._session_factory() as session:
            rows = session.execute(
                select(ScheduleMemberModel)
                .where(ScheduleMemberModel.schedule_id.in_(ids))
                .order_by(ScheduleMemberModel.created_at)
            ).scalars()
            return [_member_from_model(row) for row in rows]

    def get_member(self, schedule_id: str, member_id: str) -> MemberRecord | None:
        with self._session_factory() as session:
            row = session.get(ScheduleMemberModel, member_id)
            if row is None or row.schedule_id != schedule_id:
                return None
            return _member_from_model(row)

    def add_member(self, record: MemberRecord) -> MemberRecord:
        with self._session_factory() as session:
            session.add(_member_to_model(record))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Person is already a member of this schedule") from exc
            return record

    def save_member(self, record: MemberRecord) -> MemberRecord:
        with self._session_factory() as session:
            session.merge(_member_to_model(record))
            session.commit()
            return record

    def delete_member(self, schedule_id: str, member_id: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                delete(ScheduleMemberModel).where(
                    ScheduleMemberModel.id == member_id,
                    ScheduleMemberModel.schedule_id == schedule_id,
                )
            )
            session.commit()
            return bool(result.rowcount)


_DEFAULT_SCHEDULE_REPOSITORY = InMemoryScheduleRepository()
_SQL_SCHEDULE_REPOSITORY: SQLScheduleRepository | None = None


def _get_sql_schedule_repository() -> SQLScheduleRepository:
    global _SQL_SCHEDULE_REPOSITORY
    if _SQL_SCHEDULE_REPOSITORY is None:
        session_factory = get_session_factory()
        _SQL_SCHEDULE_REPOSITORY = SQLScheduleRepository(session_factory)
    return _SQL_SCHEDULE_REPOSITORY


def get_schedule_repository() -> ScheduleRepository:
    """Return the configured schedule repository."""
    if is_database_configured() and get_engine() is not None:
        try:
            return _get_sql_schedule_repository()
        except RuntimeError:
            return _DEFAULT_SCHEDULE_REPOSITORY
    return _DEFAULT_SCHEDULE_REPOSITORY


__all__ = [
    "GenerationRecord",
    "ScheduleRecord",
    "ScheduleGroupRecord",
    "ScheduleTeamRecord",
    "TeamAssignmentRecord",
    "MemberRecord",
    "ScheduleFilter",
    "ScheduleRepository",
    "InMemoryScheduleRepository",
    "SQLScheduleRepository",
    "get_schedule_repository",
]
