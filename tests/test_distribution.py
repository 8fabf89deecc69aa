from __future__ import annotations

import random
from datetime import date, datetime, timezone

from roster.directory import Absence, Group, GroupMember, Person, Responsibility, Team
from roster.distribution import ParticipantDistributor, select_group_indices
from roster.schemas import parse_generation_configuration

AREA = "area-1"
VOCAL = Responsibility(id="resp-1", scheduled_area_id=AREA, name="Vocal")


def _group(group_id: str, *people: str) -> Group:
    return Group(
        id=group_id,
        scheduled_area_id=AREA,
        name=f"Group {group_id}",
        members=tuple(
            GroupMember(
                id=f"{group_id}-{person}",
                person=Person(id=person, full_name=person.title()),
                responsibilities=(VOCAL,),
            )
            for person in people
        ),
    )


def _group_configuration(**group_config) -> object:
    group_config.setdefault("groupIds", ["A", "B", "C"])
    return parse_generation_configuration(
        {
            "generationType": "group",
            "periodType": "daily",
            "periodStartDate": "2025-01-06",
            "periodEndDate": "2025-01-10",
            "groupConfig": group_config,
        }
    )


def _window(day: int) -> tuple[datetime, datetime]:
    return (
        datetime(2025, 1, day, 8, tzinfo=timezone.utc),
        datetime(2025, 1, day, 17, tzinfo=timezone.utc),
    )


def test_sequential_rotates_one_group_per_instance():
    picks = [select_group_indices(3, 1, "sequential", index) for index in range(5)]

    assert picks == [[0], [1], [2], [0], [1]]


def test_sequential_slides_a_window_of_groups():
    picks = [select_group_indices(4, 2, "sequential", index) for index in range(4)]

    assert picks == [[0, 1], [1, 2], [2, 3], [3, 0]]


def test_balanced_cycles_disjoint_windows():
    picks = [select_group_indices(4, 2, "balanced", index) for index in range(4)]

    assert picks == [[0, 1], [2, 3], [0, 1], [2, 3]]


def test_balanced_matches_sequential_for_single_group():
    for index in range(7):
        assert select_group_indices(5, 1, "balanced", index) == select_group_indices(
            5, 1, "sequential", index
        )


def test_random_uses_injected_generator():
    first = select_group_indices(5, 2, "random", 0, random.Random(42))
    second = select_group_indices(5, 2, "random", 0, random.Random(42))

    assert first == second
    assert len(set(first)) == 2


def test_no_groups_selects_nothing():
    assert select_group_indices(0, 2, "sequential", 3) == []


def test_distributor_assigns_groups_in_order():
    groups = [_group("A", "ana"), _group("B", "bruno"), _group("C", "carla")]
    distributor = ParticipantDistributor(_group_configuration(), groups=groups)

    chosen = [
        distributor.distribute(index, *_window(6 + index)).groups[0].id
        for index in range(5)
    ]

    assert chosen == ["A", "B", "C", "A", "B"]


def test_distributor_reports_missing_groups_as_errors():
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["A", "ghost"]),
        groups=[_group("A", "ana")],
        missing_group_ids=["ghost"],
    )

    result = distributor.distribute(0, *_window(6))

    assert result.errors == ["Group ghost not found in this scheduled area"]
    assert [group.id for group in result.groups] == ["A"]


def test_distributor_without_groups_is_an_error():
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["ghost"]), missing_group_ids=["ghost"]
    )

    result = distributor.distribute(0, *_window(6))

    assert "No groups available for this schedule" in result.errors
    assert result.groups == []


def test_distributor_excludes_people_silently():
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["A"], excludedPersonIds=["bruno"]),
        groups=[_group("A", "ana", "bruno")],
    )

    result = distributor.distribute(0, *_window(6))

    assert [member.person_id for member in result.groups[0].members] == ["ana"]
    assert result.warnings == []


def test_distributor_drops_absent_people_with_warning():
    absence = Absence(
        id="abs-1",
        person_id="bruno",
        start_date=date(2025, 1, 7),
        end_date=date(2025, 1, 7),
    )
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["A"], considerAbsences=True),
        groups=[_group("A", "ana", "bruno")],
        absences=[absence],
    )

    on_leave = distributor.distribute(0, *_window(7))
    back = distributor.distribute(1, *_window(8))

    assert [member.person_id for member in on_leave.groups[0].members] == ["ana"]
    assert on_leave.warnings == ["Bruno is absent and was removed from group Group A"]
    assert [member.person_id for member in back.groups[0].members] == ["ana", "bruno"]
    assert back.warnings == []


def test_distributor_warns_when_one_selected_group_is_left_empty():
    distributor = ParticipantDistributor(
        _group_configuration(
            groupIds=["A", "B"], groupsPerSchedule=2, excludedPersonIds=["ana"]
        ),
        groups=[_group("A", "ana"), _group("B", "bruno")],
    )

    result = distributor.distribute(0, *_window(6))

    assert result.groups[0].members == []
    assert result.warnings == ["Group Group A has no available members"]
    assert result.errors == []


def test_distributor_errors_when_every_selected_group_is_empty():
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["A"], excludedPersonIds=["ana"]),
        groups=[_group("A", "ana")],
    )

    result = distributor.distribute(0, *_window(6))

    assert result.groups[0].members == []
    assert result.warnings == ["Group Group A has no available members"]
    assert result.errors == ["No available members for this schedule"]


def test_distributor_deduplicates_when_asking_for_more_groups_than_exist():
    distributor = ParticipantDistributor(
        _group_configuration(groupIds=["A", "B"], groupsPerSchedule=3),
        groups=[_group("A", "ana"), _group("B", "bruno")],
    )

    result = distributor.distribute(0, *_window(6))

    assert [group.id for group in result.groups] == ["A", "B"]
    assert len(result.warnings) == 1
    assert "groupsPerSchedule (3)" in result.warnings[0]


def test_team_generation_attaches_team_or_reports_missing():
    configuration = parse_generation_configuration(
        {
            "generationType": "team_without_restriction",
            "periodType": "fixed",
            "periodStartDate": "2025-01-06",
            "periodEndDate": "2025-01-06",
            "teamConfig": {"teamId": "team-1"},
        }
    )
    team = Team(id="team-1", scheduled_area_id=AREA, name="Sound")

    found = ParticipantDistributor(configuration, team=team).distribute(0, *_window(6))
    missing = ParticipantDistributor(configuration).distribute(0, *_window(6))

    assert found.team.id == "team-1"
    assert found.assignments == []
    assert found.errors == []
    assert missing.team is None
    assert missing.errors == ["Team team-1 not found in this scheduled area"]


def test_people_generation_assigns_nobody():
    configuration = parse_generation_configuration(
        {
            "generationType": "people",
            "periodType": "fixed",
            "periodStartDate": "2025-01-06",
            "periodEndDate": "2025-01-06",
            "peopleConfig": {},
        }
    )

    result = ParticipantDistributor(configuration).distribute(0, *_window(6))

    assert result.groups is None
    assert result.assignments is None
    assert result.warnings == []
    assert result.errors == []
