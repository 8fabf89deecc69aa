"""Demo directory data used by the in-memory repositories and seeding."""

from __future__ import annotations

from datetime import date

from .directory import (
    Absence,
    Area,
    DirectoryRepository,
    Group,
    GroupMember,
    Person,
    Responsibility,
    Team,
    TeamRole,
)

DEFAULT_AREA = Area(
    id="area-worship",
    name="Louvor",
    description="Music team serving the weekly services.",
)

_VOCAL = Responsibility(id="resp-vocal", scheduled_area_id=DEFAULT_AREA.id, name="Vocal")
_GUITAR = Responsibility(id="resp-guitar", scheduled_area_id=DEFAULT_AREA.id, name="Violão")
_DRUMS = Responsibility(id="resp-drums", scheduled_area_id=DEFAULT_AREA.id, name="Bateria")
_SOUND = Responsibility(id="resp-sound", scheduled_area_id=DEFAULT_AREA.id, name="Som")

DEFAULT_RESPONSIBILITIES: list[Responsibility] = [_VOCAL, _GUITAR, _DRUMS, _SOUND]

DEFAULT_PERSONS: list[Person] = [
    Person(id="person-ana", full_name="Ana Souza", email="ana@example.com"),
    Person(id="person-bruno", full_name="Bruno Lima", email="bruno@example.com"),
    Person(id="person-carla", full_name="Carla Dias", email="carla@example.com"),
    Person(id="person-diego", full_name="Diego Alves", email="diego@example.com"),
    Person(id="person-elisa", full_name="Elisa Rocha", email="elisa@example.com"),
    Person(id="person-felipe", full_name="Felipe Costa", email="felipe@example.com"),
]

_PEOPLE = {person.id: person for person in DEFAULT_PERSONS}

DEFAULT_GROUPS: list[Group] = [
    Group(
        id="group-a",
        scheduled_area_id=DEFAULT_AREA.id,
        name="Equipe A",
        members=(
            GroupMember(id="member-a1", person=_PEOPLE["person-ana"], responsibilities=(_VOCAL,)),
            GroupMember(id="member-a2", person=_PEOPLE["person-bruno"], responsibilities=(_GUITAR,)),
            GroupMember(id="member-a3", person=_PEOPLE["person-carla"], responsibilities=(_DRUMS,)),
        ),
    ),
    Group(
        id="group-b",
        scheduled_area_id=DEFAULT_AREA.id,
        name="Equipe B",
        members=(
            GroupMember(id="member-b1", person=_PEOPLE["person-diego"], responsibilities=(_VOCAL,)),
            GroupMember(id="member-b2", person=_PEOPLE["person-elisa"], responsibilities=(_GUITAR,)),
            GroupMember(
                id="member-b3",
                person=_PEOPLE["person-felipe"],
                responsibilities=(_DRUMS, _SOUND),
            ),
        ),
    ),
]

DEFAULT_TEAM = Team(id="team-sound", scheduled_area_id=DEFAULT_AREA.id, name="Mesa de som")
DEFAULT_TEAM_ROLES: list[TeamRole] = [
    TeamRole(id="role-sound-operator", team_id=DEFAULT_TEAM.id, responsibility_id=_SOUND.id),
]

DEFAULT_ABSENCES: list[Absence] = [
    Absence(
        id="absence-elisa-trip",
        person_id="person-elisa",
        start_date=date(2025, 1, 8),
        end_date=date(2025, 1, 9),
        description="Viagem",
    ),
]


def seed_directory(repository: DirectoryRepository) -> None:
    """Load the demo area, people, groups and team into ``repository``."""
    repository.add_area(DEFAULT_AREA)
    for responsibility in DEFAULT_RESPONSIBILITIES:
        repository.add_responsibility(responsibility)
    for person in DEFAULT_PERSONS:
        repository.add_person(person, [DEFAULT_AREA.id])
    for group in DEFAULT_GROUPS:
        repository.add_group(group)
    repository.add_team(DEFAULT_TEAM, DEFAULT_TEAM_ROLES)
    for absence in DEFAULT_ABSENCES:
        repository.add_absence(absence)


__all__ = [
    "DEFAULT_AREA",
    "DEFAULT_GROUPS",
    "DEFAULT_PERSONS",
    "DEFAULT_RESPONSIBILITIES",
    "DEFAULT_TEAM",
    "DEFAULT_TEAM_ROLES",
    "DEFAULT_ABSENCES",
    "seed_directory",
]
