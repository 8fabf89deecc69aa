"""Audit trail for schedule mutations."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from threading import Lock
from typing import Any, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings
from .database import get_engine, get_session_factory, is_database_configured
from .db_models import ScheduleLogModel
from .directory import DirectoryRepository
from .messages import MessageCatalog
from .schemas import (
    ChangedByPerson,
    ChangeType,
    PaginatedScheduleLogs,
    PaginationMeta,
    ScheduleLogEntry,
)
from .utils import logger, page_window, total_pages, utc_now


@dataclass(frozen=True)
class LogRecord:
    id: int | None
    schedule_id: str
    change_type: str
    created_at: datetime
    schedule_member_id: str | None = None
    person_id: str | None = None
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    changed_by: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class LogFilter:
    change_type: str | None = None
    person_id: str | None = None
    changed_by: str | None = None

    def matches(self, record: LogRecord) -> bool:
        if self.change_type and record.change_type != self.change_type:
            return False
        if self.person_id and record.person_id != self.person_id:
            return False
        if self.changed_by and record.changed_by != self.changed_by:
            return False
        return True


class ScheduleLogRepository(Protocol):
    """Append-only storage for schedule change entries."""

    def append(self, record: LogRecord) -> LogRecord:
        ...

    def list_for_schedule(
        self, schedule_id: str, log_filter: LogFilter, *, offset: int, limit: int
    ) -> tuple[list[LogRecord], int]:
        ...

    def delete_for_schedules(self, schedule_ids: Iterable[str]) -> None:
        ...


class InMemoryScheduleLogRepository(ScheduleLogRepository):
    def __init__(self) -> None:
        self._records: list[LogRecord] = []
        self._lock = Lock()
        self._counter = 0

    def append(self, record: LogRecord) -> LogRecord:
        with self._lock:
            self._counter += 1
            stored = replace(record, id=self._counter)
            self._records.append(stored)
            return stored

    def list_for_schedule(
        self, schedule_id: str, log_filter: LogFilter, *, offset: int, limit: int
    ) -> tuple[list[LogRecord], int]:
        with self._lock:
            matches = [
                record
                for record in reversed(self._records)
                if record.schedule_id == schedule_id and log_filter.matches(record)
            ]
        return matches[offset : offset + limit], len(matches)

    def delete_for_schedules(self, schedule_ids: Iterable[str]) -> None:
        doomed = set(schedule_ids)
        with self._lock:
            self._records = [
                record for record in self._records if record.schedule_id not in doomed
            ]


def _dump_value(value: dict[str, Any] | None) -> str | None:
    return json.dumps(value) if value is not None else None


def _record_from_model(row: ScheduleLogModel) -> LogRecord:
    return LogRecord(
        id=row.id,
        schedule_id=row.schedule_id,
        schedule_member_id=row.schedule_member_id,
        person_id=row.person_id,
        change_type=row.change_type,
        old_value=json.loads(row.old_value_json) if row.old_value_json else None,
        new_value=json.loads(row.new_value_json) if row.new_value_json else None,
        changed_by=row.changed_by,
        message=row.message,
        created_at=datetime.fromisoformat(row.created_at),
    )


class SQLScheduleLogRepository(ScheduleLogRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def append(self, record: LogRecord) -> LogRecord:
        model = ScheduleLogModel(
            schedule_id=record.schedule_id,
            schedule_member_id=record.schedule_member_id,
            person_id=record.person_id,
            change_type=record.change_type,
            old_value_json=_dump_value(record.old_value),
            new_value_json=_dump_value(record.new_value),
            changed_by=record.changed_by,
            message=record.message,
            created_at=record.created_at.isoformat(),
        )
        with self._session_factory() as session:
            session.add(model)
            session.commit()
            session.refresh(model)
            return _record_from_model(model)

    def list_for_schedule(
        self, schedule_id: str, log_filter: LogFilter, *, offset: int, limit: int
    ) -> tuple[list[LogRecord], int]:
        conditions = [ScheduleLogModel.schedule_id == schedule_id]
        if log_filter.change_type:
            conditions.append(ScheduleLogModel.change_type == log_filter.change_type)
        if log_filter.person_id:
            conditions.append(ScheduleLogModel.person_id == log_filter.person_id)
        if log_filter.changed_by:
            conditions.append(ScheduleLogModel.changed_by == log_filter.changed_by)

        with self._session_factory() as session:
            total = session.execute(
                select(func.count(ScheduleLogModel.id)).where(*conditions)
            ).scalar_one()
            rows = (
                session.execute(
                    select(ScheduleLogModel)
                    .where(*conditions)
                    .order_by(ScheduleLogModel.id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                .scalars()
                .all()
            )
            return [_record_from_model(row) for row in rows], int(total)

    def delete_for_schedules(self, schedule_ids: Iterable[str]) -> None:
        ids = set(schedule_ids)
        if not ids:
            return
        with self._session_factory() as session:
            session.execute(
                delete(ScheduleLogModel).where(ScheduleLogModel.schedule_id.in_(ids))
            )
            session.commit()


_DEFAULT_LOG_REPOSITORY = InMemoryScheduleLogRepository()
_SQL_LOG_REPOSITORY: SQLScheduleLogRepository | None = None


def _get_sql_log_repository() -> SQLScheduleLogRepository:
    global _SQL_LOG_REPOSITORY
    if _SQL_LOG_REPOSITORY is None:
        session_factory = get_session_factory()
        _SQL_LOG_REPOSITORY = SQLScheduleLogRepository(session_factory)
    return _SQL_LOG_REPOSITORY


def get_log_repository() -> ScheduleLogRepository:
    """Return the configured schedule log repository."""
    if is_database_configured() and get_engine() is not None:
        try:
            return _get_sql_log_repository()
        except RuntimeError:
            return _DEFAULT_LOG_REPOSITORY
    return _DEFAULT_LOG_REPOSITORY


# Recorder --------------------------------------------------------------------


def default_catalog() -> MessageCatalog:
    settings = get_settings()
    return MessageCatalog(settings.log_locale, settings.timezone)


class ChangeLogRecorder:
    """Writes localized audit entries without ever failing the caller.

    Referenced ids inside ``old_value`` and ``new_value`` (person, responsibility,
    team, team role) are resolved against the directory for the message text;
    anything that cannot be resolved falls back to a catalog placeholder.
    """

    def __init__(
        self,
        repository: ScheduleLogRepository,
        directory: DirectoryRepository,
        catalog: MessageCatalog | None = None,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._catalog = catalog or default_catalog()

    def record(
        self,
        schedule_id: str,
        change_type: ChangeType,
        *,
        member_id: str | None = None,
        person_id: str | None = None,
        old_value: dict[str, Any] | None = None,
        new_value: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> LogRecord | None:
        try:
            changed_by = self._valid_actor(actor_id)
            message = self._build_message(change_type, old_value, new_value, person_id)
            return self._repository.append(
                LogRecord(
                    id=None,
                    schedule_id=schedule_id,
                    schedule_member_id=member_id,
                    person_id=person_id,
                    change_type=change_type,
                    old_value=old_value,
                    new_value=new_value,
                    changed_by=changed_by,
                    message=message,
                    created_at=utc_now(),
                )
            )
        except Exception:
            logger.bind(schedule_id=schedule_id, change_type=change_type).exception(
                "Failed to record schedule change"
            )
            return None

    def discard(self, schedule_ids: Iterable[str]) -> None:
        """Drop the entries of schedules that no longer exist."""
        self._repository.delete_for_schedules(schedule_ids)

    def _valid_actor(self, actor_id: str | None) -> str | None:
        if not actor_id:
            return None
        if self._directory.get_person(actor_id) is None:
            logger.bind(actor=actor_id).debug("Unknown actor; storing change without it")
            return None
        return actor_id

    def _lookup(self, fetch: Callable[[], str | None], placeholder: str) -> str:
        try:
            value = fetch()
        except Exception:
            logger.opt(exception=True).debug("Log message lookup failed")
            return self._catalog.text(placeholder)
        return value or self._catalog.text(placeholder)

    def _person_name(self, person_id: str | None) -> str:
        if not person_id:
            return self._catalog.text("member")

        def fetch() -> str | None:
            person = self._directory.get_person(person_id)
            return person.full_name if person else None

        return self._lookup(fetch, "member")

    def _responsibility_name(self, responsibility_id: str) -> str:
        def fetch() -> str | None:
            responsibility = self._directory.get_responsibility(responsibility_id)
            return responsibility.name if responsibility else None

        return self._lookup(fetch, "responsibility_not_found")

    def _team_name(self, team_id: str) -> str:
        def fetch() -> str | None:
            team = self._directory.get_team(team_id)
            return team.name if team else None

        return self._lookup(fetch, "team_not_found")

    def _team_role_name(self, team_role_id: str) -> str:
        def fetch() -> str | None:
            role = self._directory.get_team_role(team_role_id)
            if role is None:
                return None
            responsibility = self._directory.get_responsibility(role.responsibility_id)
            return responsibility.name if responsibility else None

        return self._lookup(fetch, "responsibility_not_found")

    def _build_message(
        self,
        change_type: str,
        old_value: dict[str, Any] | None,
        new_value: dict[str, Any] | None,
        person_id: str | None,
    ) -> str | None:
        catalog = self._catalog
        old = old_value or {}
        new = new_value or {}

        if change_type == "member_added":
            person = self._person_name(person_id)
            if new.get("responsibilityId"):
                return catalog.text(
                    "member_added_as",
                    person=person,
                    responsibility=self._responsibility_name(new["responsibilityId"]),
                )
            return catalog.text("member_added", person=person)
        if change_type == "member_removed":
            return catalog.text("member_removed", person=self._person_name(person_id))
        if change_type == "member_status_changed":
            return catalog.text(
                "member_status_changed",
                person=self._person_name(person_id),
                old=catalog.member_status(old.get("status")),
                new=catalog.member_status(new.get("status")),
            )
        if change_type == "member_present_changed":
            return catalog.text(
                "member_present_changed",
                person=self._person_name(person_id),
                old=catalog.presence(old.get("present")),
                new=catalog.presence(new.get("present")),
            )
        if change_type == "member_responsibility_changed":
            return catalog.text(
                "member_responsibility_changed",
                person=self._person_name(person_id),
                old=self._optional_responsibility(old.get("responsibilityId")),
                new=self._optional_responsibility(new.get("responsibilityId")),
            )
        if change_type == "schedule_start_date_changed":
            return catalog.text(
                "schedule_start_date_changed",
                old=catalog.instant(old.get("startDatetime")),
                new=catalog.instant(new.get("startDatetime")),
            )
        if change_type == "schedule_end_date_changed":
            return catalog.text(
                "schedule_end_date_changed",
                old=catalog.instant(old.get("endDatetime")),
                new=catalog.instant(new.get("endDatetime")),
            )
        if change_type == "schedule_status_changed":
            return catalog.text(
                "schedule_status_changed",
                old=catalog.schedule_status(old.get("status")),
                new=catalog.schedule_status(new.get("status")),
            )
        if change_type == "team_changed":
            return catalog.text(
                "team_changed",
                old=self._optional_team(old.get("teamId")),
                new=self._optional_team(new.get("teamId")),
            )
        if change_type == "team_member_added":
            person = self._person_name(new.get("personId"))
            if new.get("teamRoleId"):
                return catalog.text(
                    "team_member_added_as",
                    person=person,
                    role=self._team_role_name(new["teamRoleId"]),
                )
            return catalog.text("team_member_added", person=person)
        if change_type == "team_member_removed":
            return catalog.text(
                "team_member_removed", person=self._person_name(old.get("personId"))
            )
        return None

    def _optional_responsibility(self, responsibility_id: str | None) -> str:
        if not responsibility_id:
            return self._catalog.text("undefined")
        return self._responsibility_name(responsibility_id)

    def _optional_team(self, team_id: str | None) -> str:
        if not team_id:
            return self._catalog.text("undefined")
        return self._team_name(team_id)


def list_logs(
    repository: ScheduleLogRepository,
    directory: DirectoryRepository,
    schedule_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    change_type: str | None = None,
    person_id: str | None = None,
    changed_by: str | None = None,
) -> PaginatedScheduleLogs:
    """Return one page of a schedule's log, newest first."""
    page, limit, offset = page_window(page, limit)
    records, total = repository.list_for_schedule(
        schedule_id,
        LogFilter(change_type=change_type, person_id=person_id, changed_by=changed_by),
        offset=offset,
        limit=limit,
    )
    actors = directory.get_persons(
        record.changed_by for record in records if record.changed_by
    )
    data = []
    for record in records:
        actor = actors.get(record.changed_by) if record.changed_by else None
        data.append(
            ScheduleLogEntry(
                id=record.id or 0,
                schedule_id=record.schedule_id,
                schedule_member_id=record.schedule_member_id,
                person_id=record.person_id,
                change_type=record.change_type,
                old_value=record.old_value,
                new_value=record.new_value,
                changed_by=record.changed_by,
                changed_by_person=(
                    ChangedByPerson(id=actor.id, full_name=actor.full_name, email=actor.email)
                    if actor
                    else None
                ),
                message=record.message,
                created_at=record.created_at,
            )
        )
    return PaginatedScheduleLogs(
        data=data,
        meta=PaginationMeta(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


__all__ = [
    "LogRecord",
    "LogFilter",
    "ScheduleLogRepository",
    "InMemoryScheduleLogRepository",
    "SQLScheduleLogRepository",
    "get_log_repository",
    "ChangeLogRecorder",
    "list_logs",
]
