from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

# Ensure we operate against the in-memory repositories during tests.
os.environ["ROSTER_DB_MODE"] = "memory"
os.environ["ROSTER_DB_URL"] = ""

from roster.app import app  # noqa: E402
from roster.logs import InMemoryScheduleLogRepository, LogFilter  # noqa: E402
from roster.schedules import InMemoryScheduleRepository  # noqa: E402

client = TestClient(app)

AREA = "area-worship"
SCHEDULES_URL = f"/scheduled-areas/{AREA}/schedules"


@pytest.fixture
def generated(monkeypatch):
    """Commit Monday to Friday with groups A and B taking turns."""
    schedules = InMemoryScheduleRepository()
    logs = InMemoryScheduleLogRepository()
    monkeypatch.setattr("roster.router.get_schedule_repository", lambda: schedules)
    monkeypatch.setattr("roster.router.get_log_repository", lambda: logs)

    response = client.post(
        f"/scheduled-areas/{AREA}/schedule-generations",
        json={
            "generationType": "group",
            "periodType": "daily",
            "periodStartDate": "2025-01-06",
            "periodEndDate": "2025-01-10",
            "groupConfig": {"groupIds": ["group-a", "group-b"]},
        },
    )
    assert response.status_code == 201
    return {"generation": response.json(), "logs": logs}


def _list(**params) -> dict:
    response = client.get(SCHEDULES_URL, params=params)
    assert response.status_code == 200
    return response.json()


def _create(payload: dict) -> dict:
    response = client.post(SCHEDULES_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _individual(**overrides) -> dict:
    payload = {
        "startDatetime": "2025-01-08T18:00:00Z",
        "endDatetime": "2025-01-08T20:00:00Z",
        "scheduleType": "individual",
        "members": [
            {"personId": "person-ana", "responsibilityId": "resp-vocal"},
            {"personId": "person-felipe", "responsibilityId": "resp-sound"},
        ],
    }
    payload.update(overrides)
    return payload


def test_list_schedules_pages_in_start_order(generated):
    everything = _list()

    assert everything["meta"] == {"page": 1, "limit": 10, "total": 5, "totalPages": 1}
    starts = [item["startDatetime"][:10] for item in everything["data"]]
    assert starts == ["2025-01-06", "2025-01-07", "2025-01-08", "2025-01-09", "2025-01-10"]
    assert all(item["participantsCount"] == 3 for item in everything["data"])
    assert "members" not in everything["data"][0]

    second_page = _list(page=2, limit=2)
    assert [item["startDatetime"][:10] for item in second_page["data"]] == [
        "2025-01-08",
        "2025-01-09",
    ]
    assert second_page["meta"]["totalPages"] == 3


def test_list_schedules_filters(generated):
    generation_id = generated["generation"]["id"]
    first_id = generated["generation"]["schedules"][0]["id"]
    client.patch(f"{SCHEDULES_URL}/{first_id}", json={"status": "confirmed"})

    assert _list(scheduleGenerationId=generation_id)["meta"]["total"] == 5
    assert _list(scheduleGenerationId="other")["meta"]["total"] == 0
    assert _list(groupId="group-b")["meta"]["total"] == 2
    assert _list(personId="person-ana")["meta"]["total"] == 3
    assert _list(status="confirmed")["data"][0]["id"] == first_id

    window = _list(startDate="2025-01-08", endDate="2025-01-09")
    assert [item["startDatetime"][:10] for item in window["data"]] == [
        "2025-01-08",
        "2025-01-09",
    ]


def test_person_filter_matches_members_and_team_assignments(generated):
    manual = _create(_individual())
    team = _create(
        {
            "startDatetime": "2025-01-11T09:00:00Z",
            "endDatetime": "2025-01-11T12:00:00Z",
            "scheduleType": "team",
            "teamId": "team-sound",
            "assignments": [{"personId": "person-bruno", "teamRoleId": "role-sound-operator"}],
        }
    )

    felipe = _list(personId="person-felipe")
    assert felipe["meta"]["total"] == 3
    assert manual["id"] in {item["id"] for item in felipe["data"]}

    bruno = _list(personId="person-bruno")
    assert bruno["meta"]["total"] == 4
    assert bruno["data"][-1]["id"] == team["id"]
    assert [item["id"] for item in _list(teamId="team-sound")["data"]] == [team["id"]]

    same_day = _list(startDate="2025-01-08", endDate="2025-01-08")
    assert same_day["meta"]["total"] == 2


def test_list_schedules_rejects_bad_queries(generated):
    assert client.get(SCHEDULES_URL, params={"status": "archived"}).status_code == 400
    assert client.get(SCHEDULES_URL, params={"startDate": "not-a-date"}).status_code == 400
    inverted = client.get(
        SCHEDULES_URL, params={"startDate": "2025-01-09", "endDate": "2025-01-08"}
    )
    assert inverted.status_code == 400
    assert client.get("/scheduled-areas/nowhere/schedules").status_code == 404


def test_create_manual_group_schedule_and_move_it(generated):
    created = _create(
        {
            "startDatetime": "2025-01-12T08:00:00Z",
            "endDatetime": "2025-01-12T10:00:00Z",
            "scheduleType": "group",
            "groupIds": ["group-b"],
        }
    )

    assert created["scheduleGenerationId"] is None
    assert created["status"] == "pending"
    assert [group["name"] for group in created["groups"]] == ["Equipe B"]
    assert created["participantsCount"] == 0

    moved = client.patch(
        f"{SCHEDULES_URL}/{created['id']}",
        json={"startDatetime": "2025-01-12T09:00:00Z"},
        headers={"x-actor": "person-ana"},
    )
    assert moved.status_code == 200
    assert moved.json()["startDatetime"].startswith("2025-01-12T09:00:00")

    logs = client.get(f"{SCHEDULES_URL}/{created['id']}/logs").json()
    assert [entry["changeType"] for entry in logs["data"]] == ["schedule_start_date_changed"]
    assert logs["data"][0]["changedBy"] == "person-ana"


def test_create_manual_team_and_individual_schedules(generated):
    team = _create(
        {
            "startDatetime": "2025-01-11T09:00:00Z",
            "endDatetime": "2025-01-11T12:00:00Z",
            "scheduleType": "team",
            "teamId": "team-sound",
            "assignments": [{"personId": "person-felipe", "teamRoleId": "role-sound-operator"}],
        }
    )
    assert team["team"] == {"id": "team-sound", "name": "Mesa de som"}
    assert [assignment["roleName"] for assignment in team["assignments"]] == ["Som"]
    assert team["participantsCount"] == 1

    individual = _create(_individual())
    assert individual["scheduleType"] == "individual"
    assert {member["personName"] for member in individual["members"]} == {
        "Ana Souza",
        "Felipe Costa",
    }
    assert individual["participantsCount"] == 2
    assert _list()["meta"]["total"] == 7


@pytest.mark.parametrize(
    "payload, expected",
    [
        (_individual(endDatetime="2025-01-08T18:00:00Z"), 400),
        (_individual(members=[]), 400),
        (
            _individual(
                members=[
                    {"personId": "person-ana", "responsibilityId": "resp-vocal"},
                    {"personId": "person-ana", "responsibilityId": "resp-guitar"},
                ]
            ),
            400,
        ),
        (_individual(members=[{"personId": "person-zzz", "responsibilityId": "resp-vocal"}]), 404),
        (_individual(scheduleType="group"), 400),
        (_individual(scheduleType="group", groupIds=["group-zzz"]), 404),
        (_individual(scheduleType="team", teamId="team-sound"), 400),
        (
            _individual(
                scheduleType="team",
                teamId="team-sound",
                assignments=[{"personId": "person-ana", "teamRoleId": "role-zzz"}],
            ),
            404,
        ),
        (
            _individual(
                scheduleType="team",
                teamId="team-zzz",
                assignments=[{"personId": "person-ana", "teamRoleId": "role-sound-operator"}],
            ),
            404,
        ),
        (_individual(scheduleType="weekly"), 400),
    ],
)
def test_create_manual_schedule_validation(generated, payload, expected):
    response = client.post(SCHEDULES_URL, json=payload)

    assert response.status_code == expected
    assert _list()["meta"]["total"] == 5


def test_create_schedule_in_unknown_area(generated):
    response = client.post("/scheduled-areas/nowhere/schedules", json=_individual())
    assert response.status_code == 404


def test_delete_manual_schedule(generated):
    created = _create(_individual())
    client.patch(f"{SCHEDULES_URL}/{created['id']}", json={"status": "cancelled"})

    assert client.delete(f"{SCHEDULES_URL}/{created['id']}").status_code == 204

    assert client.get(f"{SCHEDULES_URL}/{created['id']}").status_code == 404
    assert client.delete(f"{SCHEDULES_URL}/{created['id']}").status_code == 404
    assert _list(personId="person-ana")["meta"]["total"] == 3
    remaining = generated["logs"].list_for_schedule(
        created["id"], LogFilter(), offset=0, limit=10
    )
    assert remaining == ([], 0)


def test_generated_schedule_cannot_be_deleted_directly(generated):
    schedule_id = generated["generation"]["schedules"][0]["id"]

    response = client.delete(f"{SCHEDULES_URL}/{schedule_id}")

    assert response.status_code == 400
    assert "Delete the schedule generation instead" in response.json()["detail"]
    assert client.get(f"{SCHEDULES_URL}/{schedule_id}").status_code == 200
