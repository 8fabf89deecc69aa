"""Read access to the people, groups, and teams that schedules draw from."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from threading import Lock
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .database import get_engine, get_session_factory, is_database_configured
from .db_models import (
    AreaGroupMemberModel,
    AreaGroupMemberResponsibilityModel,
    AreaGroupModel,
    AreaTeamModel,
    AreaTeamRoleModel,
    PersonAreaModel,
    PersonModel,
    ResponsibilityModel,
    ScheduledAbsenceModel,
    ScheduledAreaModel,
)


@dataclass(frozen=True)
class Area:
    id: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class Person:
    id: str
    full_name: str
    email: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True)
class Responsibility:
    id: str
    scheduled_area_id: str
    name: str
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class GroupMember:
    """A person inside a group, with responsibilities in preference order."""

    id: str
    person: Person
    responsibilities: tuple[Responsibility, ...] = ()


@dataclass(frozen=True)
class Group:
    id: str
    scheduled_area_id: str
    name: str
    members: tuple[GroupMember, ...] = ()
    description: str | None = None


@dataclass(frozen=True)
class Team:
    id: str
    scheduled_area_id: str
    name: str


@dataclass(frozen=True)
class TeamRole:
    id: str
    team_id: str
    responsibility_id: str
    quantity: int = 1
    priority: int = 1
    is_free: bool = False


@dataclass(frozen=True)
class Absence:
    id: str
    person_id: str
    start_date: date
    end_date: date
    description: str | None = None

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date


class DirectoryRepository(Protocol):
    """Port exposing the directory data that schedule generation reads."""

    def get_area(self, area_id: str) -> Area | None:
        ...

    def get_person(self, person_id: str) -> Person | None:
        ...

    def get_persons(self, person_ids: Iterable[str]) -> dict[str, Person]:
        ...

    def person_in_area(self, area_id: str, person_id: str) -> bool:
        ...

    def get_responsibility(self, responsibility_id: str) -> Responsibility | None:
        ...

    def get_groups_with_members(
        self, area_id: str, group_ids: Iterable[str]
    ) -> list[Group]:
        ...

    def existing_group_ids(self, area_id: str, group_ids: Iterable[str]) -> set[str]:
        ...

    def get_team(self, team_id: str) -> Team | None:
        ...

    def get_team_role(self, team_role_id: str) -> TeamRole | None:
        ...

    def list_absences(
        self, person_ids: Iterable[str], start: date, end: date
    ) -> list[Absence]:
        ...

    def add_area(self, area: Area) -> None:
        ...

    def add_person(self, person: Person, area_ids: Iterable[str] = ()) -> None:
        ...

    def add_responsibility(self, responsibility: Responsibility) -> None:
        ...

    def add_group(self, group: Group) -> None:
        ...

    def add_team(self, team: Team, roles: Iterable[TeamRole] = ()) -> None:
        ...

    def add_absence(self, absence: Absence) -> None:
        ...


def _ordered_unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


# In-memory adapter -----------------------------------------------------------


@dataclass
class _DirectoryState:
    areas: dict[str, Area] = field(default_factory=dict)
    persons: dict[str, Person] = field(default_factory=dict)
    person_areas: set[tuple[str, str]] = field(default_factory=set)
    responsibilities: dict[str, Responsibility] = field(default_factory=dict)
    groups: dict[str, Group] = field(default_factory=dict)
    teams: dict[str, Team] = field(default_factory=dict)
    team_roles: dict[str, TeamRole] = field(default_factory=dict)
    absences: list[Absence] = field(default_factory=list)


class InMemoryDirectoryRepository(DirectoryRepository):
    """Adapter that keeps directory data in memory."""

    def __init__(self) -> None:
        self._state = _DirectoryState()
        self._lock = Lock()

    def get_area(self, area_id: str) -> Area | None:
        return self._state.areas.get(area_id)

    def get_person(self, person_id: str) -> Person | None:
        return self._state.persons.get(person_id)

    def get_persons(self, person_ids: Iterable[str]) -> dict[str, Person]:
        return {
            person_id: self._state.persons[person_id]
            for person_id in set(person_ids)
            if person_id in self._state.persons
        }

    def person_in_area(self, area_id: str, person_id: str) -> bool:
        return (person_id, area_id) in self._state.person_areas

    def get_responsibility(self, responsibility_id: str) -> Responsibility | None:
        return self._state.responsibilities.get(responsibility_id)

    def get_groups_with_members(
        self, area_id: str, group_ids: Iterable[str]
    ) -> list[Group]:
        groups: list[Group] = []
        for group_id in _ordered_unique(group_ids):
            group = self._state.groups.get(group_id)
            if group is not None and group.scheduled_area_id == area_id:
                groups.append(group)
        return groups

    def existing_group_ids(self, area_id: str, group_ids: Iterable[str]) -> set[str]:
        return {
            group.id for group in self.get_groups_with_members(area_id, group_ids)
        }

    def get_team(self, team_id: str) -> Team | None:
        return self._state.teams.get(team_id)

    def get_team_role(self, team_role_id: str) -> TeamRole | None:
        return self._state.team_roles.get(team_role_id)

    def list_absences(
        self, person_ids: Iterable[str], start: date, end: date
    ) -> list[Absence]:
        wanted = set(person_ids)
        return [
            absence
            for absence in self._state.absences
            if absence.person_id in wanted and absence.overlaps(start, end)
        ]

    def add_area(self, area: Area) -> None:
        with self._lock:
            self._state.areas[area.id] = area

    def add_person(self, person: Person, area_ids: Iterable[str] = ()) -> None:
        with self._lock:
            self._state.persons[person.id] = person
            for area_id in area_ids:
                self._state.person_areas.add((person.id, area_id))

    def add_responsibility(self, responsibility: Responsibility) -> None:
        with self._lock:
            self._state.responsibilities[responsibility.id] = responsibility

    def add_group(self, group: Group) -> None:
        with self._lock:
            self._state.groups[group.id] = group
            for member in group.members:
                self._state.persons.setdefault(member.person.id, member.person)
                self._state.person_areas.add(
                    (member.person.id, group.scheduled_area_id)
                )

    def add_team(self, team: Team, roles: Iterable[TeamRole] = ()) -> None:
        with self._lock:
            self._state.teams[team.id] = team
            for role in roles:
                self._state.team_roles[role.id] = role

    def add_absence(self, absence: Absence) -> None:
        with self._lock:
            self._state.absences.append(absence)


# SQLAlchemy adapter ----------------------------------------------------------


def _person_from_model(row: PersonModel) -> Person:
    return Person(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        photo_url=row.photo_url,
    )


def _responsibility_from_model(row: ResponsibilityModel) -> Responsibility:
    return Responsibility(
        id=row.id,
        scheduled_area_id=row.scheduled_area_id,
        name=row.name,
        description=row.description,
        image_url=row.image_url,
    )


class SQLDirectoryRepository(DirectoryRepository):
    """Adapter that reads directory data via SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get_area(self, area_id: str) -> Area | None:
        with self._session_factory() as session:
            row = session.get(ScheduledAreaModel, area_id)
            if row is None:
                return None
            return Area(id=row.id, name=row.name, description=row.description)

    def get_person(self, person_id: str) -> Person | None:
        with self._session_factory() as session:
            row = session.get(PersonModel, person_id)
            return _person_from_model(row) if row else None

    def get_persons(self, person_ids: Iterable[str]) -> dict[str, Person]:
        ids = set(person_ids)
        if not ids:
            return {}
        with self._session_factory() as session:
            rows = (
                session.execute(select(PersonModel).where(PersonModel.id.in_(ids)))
                .scalars()
                .all()
            )
            return {row.id: _person_from_model(row) for row in rows}

    def person_in_area(self, area_id: str, person_id: str) -> bool:
        with self._session_factory() as session:
            row = (
                session.execute(
                    select(PersonAreaModel.id).where(
                        PersonAreaModel.person_id == person_id,
                        PersonAreaModel.scheduled_area_id == area_id,
                    )
                )
                .scalars()
                .first()
            )
            return row is not None

    def get_responsibility(self, responsibility_id: str) -> Responsibility | None:
        with self._session_factory() as session:
            row = session.get(ResponsibilityModel, responsibility_id)
            return _responsibility_from_model(row) if row else None

    def get_groups_with_members(
        self, area_id: str, group_ids: Iterable[str]
    ) -> list[Group]:
        ordered_ids = _ordered_unique(group_ids)
        if not ordered_ids:
            return []
        with self._session_factory() as session:
            group_rows = (
                session.execute(
                    select(AreaGroupModel).where(
                        AreaGroupModel.id.in_(ordered_ids),
                        AreaGroupModel.scheduled_area_id == area_id,
                    )
                )
                .scalars()
                .all()
            )
            found = {row.id: row for row in group_rows}
            if not found:
                return []

            member_rows = (
                session.execute(
                    select(AreaGroupMemberModel)
                    .where(AreaGroupMemberModel.group_id.in_(found))
                    .order_by(AreaGroupMemberModel.position, AreaGroupMemberModel.id)
                )
                .scalars()
                .all()
            )
            member_ids = [row.id for row in member_rows]
            persons = {
                row.id: _person_from_model(row)
                for row in session.execute(
                    select(PersonModel).where(
                        PersonModel.id.in_({row.person_id for row in member_rows})
                    )
                )
                .scalars()
                .all()
            }
            link_rows = (
                session.execute(
                    select(AreaGroupMemberResponsibilityModel)
                    .where(AreaGroupMemberResponsibilityModel.member_id.in_(member_ids))
                    .order_by(
                        AreaGroupMemberResponsibilityModel.position,
                        AreaGroupMemberResponsibilityModel.id,
                    )
                )
                .scalars()
                .all()
            )
            responsibilities = {
                row.id: _responsibility_from_model(row)
                for row in session.execute(
                    select(ResponsibilityModel).where(
                        ResponsibilityModel.id.in_(
                            {link.responsibility_id for link in link_rows}
                        )
                    )
                )
                .scalars()
                .all()
            }

        member_responsibilities: dict[str, list[Responsibility]] = {}
        for link in link_rows:
            responsibility = responsibilities.get(link.responsibility_id)
            if responsibility is not None:
                member_responsibilities.setdefault(link.member_id, []).append(
                    responsibility
                )

        members_by_group: dict[str, list[GroupMember]] = {}
        for row in member_rows:
            person = persons.get(row.person_id)
            if person is None:
                continue
            members_by_group.setdefault(row.group_id, []).append(
                GroupMember(
                    id=row.id,
                    person=person,
                    responsibilities=tuple(member_responsibilities.get(row.id, [])),
                )
            )

        return [
            Group(
                id=found[group_id].id,
                scheduled_area_id=found[group_id].scheduled_area_id,
                name=found[group_id].name,
                description=found[group_id].description,
                members=tuple(members_by_group.get(group_id, [])),
            )
            for group_id in ordered_ids
            if group_id in found
        ]

    def existing_group_ids(self, area_id: str, group_ids: Iterable[str]) -> set[str]:
        ids = set(group_ids)
        if not ids:
            return set()
        with self._session_factory() as session:
            rows = session.execute(
                select(AreaGroupModel.id).where(
                    AreaGroupModel.id.in_(ids),
                    AreaGroupModel.scheduled_area_id == area_id,
                )
            ).scalars()
            return set(rows)

    def get_team(self, team_id: str) -> Team | None:
        with self._session_factory() as session:
            row = session.get(AreaTeamModel, team_id)
            if row is None:
                return None
            return Team(id=row.id, scheduled_area_id=row.scheduled_area_id, name=row.name)

    def get_team_role(self, team_role_id: str) -> TeamRole | None:
        with self._session_factory() as session:
            row = session.get(AreaTeamRoleModel, team_role_id)
            if row is None:
                return None
            return TeamRole(
                id=row.id,
                team_id=row.team_id,
                responsibility_id=row.responsibility_id,
                quantity=row.quantity,
                priority=row.priority,
                is_free=bool(row.is_free),
            )

    def list_absences(
        self, person_ids: Iterable[str], start: date, end: date
    ) -> list[Absence]:
        ids = set(person_ids)
        if not ids:
            return []
        with self._session_factory() as session:
            rows = (
                session.execute(
                    select(ScheduledAbsenceModel).where(
                        ScheduledAbsenceModel.person_id.in_(ids),
                        ScheduledAbsenceModel.start_date <= end.isoformat(),
                        ScheduledAbsenceModel.end_date >= start.isoformat(),
                    )
                )
                .scalars()
                .all()
            )
            return [
                Absence(
                    id=row.id,
                    person_id=row.person_id,
                    start_date=date.fromisoformat(row.start_date),
                    end_date=date.fromisoformat(row.end_date),
                    description=row.description,
                )
                for row in rows
            ]

    def add_area(self, area: Area) -> None:
        with self._session_factory() as session:
            session.merge(
                ScheduledAreaModel(id=area.id, name=area.name, description=area.description)
            )
            session.commit()

    def add_person(self, person: Person, area_ids: Iterable[str] = ()) -> None:
        with self._session_factory() as session:
            session.merge(
                PersonModel(
                    id=person.id,
                    full_name=person.full_name,
                    email=person.email,
                    photo_url=person.photo_url,
                )
            )
            session.flush()
            for area_id in area_ids:
                self._link_person_area(session, person.id, area_id)
            session.commit()

    @staticmethod
    def _link_person_area(session: Session, person_id: str, area_id: str) -> None:
        exists = (
            session.execute(
                select(PersonAreaModel.id).where(
                    PersonAreaModel.person_id == person_id,
                    PersonAreaModel.scheduled_area_id == area_id,
                )
            )
            .scalars()
            .first()
        )
        if exists is None:
            session.add(PersonAreaModel(person_id=person_id, scheduled_area_id=area_id))

    def add_responsibility(self, responsibility: Responsibility) -> None:
        with self._session_factory() as session:
            session.merge(
                ResponsibilityModel(
                    id=responsibility.id,
                    scheduled_area_id=responsibility.scheduled_area_id,
                    name=responsibility.name,
                    description=responsibility.description,
                    image_url=responsibility.image_url,
                )
            )
            session.commit()

    def add_group(self, group: Group) -> None:
        with self._session_factory() as session:
            session.merge(
                AreaGroupModel(
                    id=group.id,
                    scheduled_area_id=group.scheduled_area_id,
                    name=group.name,
                    description=group.description,
                )
            )
            for position, member in enumerate(group.members):
                session.merge(
                    PersonModel(
                        id=member.person.id,
                        full_name=member.person.full_name,
                        email=member.person.email,
                        photo_url=member.person.photo_url,
                    )
                )
                session.flush()
                self._link_person_area(session, member.person.id, group.scheduled_area_id)
                session.merge(
                    AreaGroupMemberModel(
                        id=member.id,
                        group_id=group.id,
                        person_id=member.person.id,
                        position=position,
                    )
                )
                session.flush()
                existing_links = {
                    link.responsibility_id
                    for link in session.execute(
                        select(AreaGroupMemberResponsibilityModel).where(
                            AreaGroupMemberResponsibilityModel.member_id == member.id
                        )
                    ).scalars()
                }
                for index, responsibility in enumerate(member.responsibilities):
                    if responsibility.id in existing_links:
                        continue
                    session.add(
                        AreaGroupMemberResponsibilityModel(
                            member_id=member.id,
                            responsibility_id=responsibility.id,
                            position=index,
                        )
                    )
            session.commit()

    def add_team(self, team: Team, roles: Iterable[TeamRole] = ()) -> None:
        with self._session_factory() as session:
            session.merge(
                AreaTeamModel(
                    id=team.id,
                    scheduled_area_id=team.scheduled_area_id,
                    name=team.name,
                )
            )
            session.flush()
            for role in roles:
                session.merge(
                    AreaTeamRoleModel(
                        id=role.id,
                        team_id=role.team_id,
                        responsibility_id=role.responsibility_id,
                        quantity=role.quantity,
                        priority=role.priority,
                        is_free=role.is_free,
                    )
                )
            session.commit()

    def add_absence(self, absence: Absence) -> None:
        with self._session_factory() as session:
            session.merge(
                ScheduledAbsenceModel(
                    id=absence.id,
                    person_id=absence.person_id,
                    start_date=absence.start_date.isoformat(),
                    end_date=absence.end_date.isoformat(),
                    description=absence.description,
                )
            )
            session.commit()


@lru_cache
def _default_directory_repository() -> InMemoryDirectoryRepository:
    from .config import get_settings
    from .defaults import seed_directory

    repository = InMemoryDirectoryRepository()
    if get_settings().seed_defaults:
        seed_directory(repository)
    return repository


_SQL_DIRECTORY_REPOSITORY: SQLDirectoryRepository | None = None


def _get_sql_directory_repository() -> SQLDirectoryRepository:
    global _SQL_DIRECTORY_REPOSITORY
    if _SQL_DIRECTORY_REPOSITORY is None:
        session_factory = get_session_factory()
        _SQL_DIRECTORY_REPOSITORY = SQLDirectoryRepository(session_factory)
    return _SQL_DIRECTORY_REPOSITORY


def get_directory_repository() -> DirectoryRepository:
    """Return the configured directory repository."""
    if is_database_configured() and get_engine() is not None:
        try:
            return _get_sql_directory_repository()
        except RuntimeError:
            return _default_directory_repository()
    return _default_directory_repository()


__all__ = [
    "Area",
    "Person",
    "Responsibility",
    "GroupMember",
    "Group",
    "Team",
    "TeamRole",
    "Absence",
    "DirectoryRepository",
    "InMemoryDirectoryRepository",
    "SQLDirectoryRepository",
    "get_directory_repository",
]
