from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

# Ensure we operate against the in-memory repositories during tests.
os.environ["ROSTER_DB_MODE"] = "memory"
os.environ["ROSTER_DB_URL"] = ""

from roster.app import app  # noqa: E402
from roster.logs import InMemoryScheduleLogRepository  # noqa: E402
from roster.schedules import InMemoryScheduleRepository  # noqa: E402

client = TestClient(app)

AREA = "area-worship"


@pytest.fixture
def schedule(monkeypatch):
    """Commit a one-week generation and return its first schedule."""
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
    return response.json()["schedules"][0]


def _url(schedule_id: str, suffix: str = "") -> str:
    return f"/scheduled-areas/{AREA}/schedules/{schedule_id}{suffix}"


def _logs(schedule_id: str, **params) -> dict:
    response = client.get(_url(schedule_id, "/logs"), params=params)
    assert response.status_code == 200
    return response.json()


def test_get_schedule_details(schedule):
    response = client.get(_url(schedule["id"]))

    assert response.status_code == 200
    data = response.json()
    assert data["scheduleType"] == "group"
    assert data["status"] == "pending"
    assert [group["name"] for group in data["groups"]] == ["Equipe A"]
    assert {member["personId"] for member in data["members"]} == {
        "person-ana",
        "person-bruno",
        "person-carla",
    }
    assert data["participantsCount"] == 3


def test_get_unknown_schedule_returns_404(schedule):
    assert client.get(_url("missing")).status_code == 404
    assert client.get(
        f"/scheduled-areas/other-area/schedules/{schedule['id']}"
    ).status_code == 404


def test_generated_schedule_dates_cannot_change(schedule):
    response = client.patch(
        _url(schedule["id"]), json={"startDatetime": "2025-01-06T09:00:00Z"}
    )

    assert response.status_code == 400
    assert "automatically generated" in response.json()["detail"]


def test_status_change_is_logged(schedule):
    response = client.patch(
        _url(schedule["id"]),
        json={"status": "confirmed"},
        headers={"x-actor": "person-bruno"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    entry = _logs(schedule["id"])["data"][0]
    assert entry["changeType"] == "schedule_status_changed"
    assert entry["oldValue"] == {"status": "pending"}
    assert entry["newValue"] == {"status": "confirmed"}
    assert entry["message"] == 'Status da escala foi alterado de "Pendente" para "Confirmada"'
    assert entry["changedBy"] == "person-bruno"
    assert entry["changedByPerson"]["fullName"] == "Bruno Lima"


def test_unchanged_status_writes_no_log(schedule):
    response = client.patch(_url(schedule["id"]), json={"status": "pending"})

    assert response.status_code == 200
    assert _logs(schedule["id"])["meta"]["total"] == 0


def test_team_can_be_set_and_cleared(schedule):
    set_response = client.patch(_url(schedule["id"]), json={"teamId": "team-sound"})
    assert set_response.status_code == 200
    assert set_response.json()["team"] == {"id": "team-sound", "name": "Mesa de som"}

    clear_response = client.patch(_url(schedule["id"]), json={"teamId": None})
    assert clear_response.status_code == 200
    assert clear_response.json()["team"] is None

    messages = [entry["message"] for entry in _logs(schedule["id"])["data"]]
    assert messages == [
        'Equipe da escala foi alterada de "Mesa de som" para "Não definida"',
        'Equipe da escala foi alterada de "Não definida" para "Mesa de som"',
    ]


def test_unknown_team_returns_404(schedule):
    response = client.patch(_url(schedule["id"]), json={"teamId": "team-zzz"})
    assert response.status_code == 404


def test_invalid_status_returns_400(schedule):
    response = client.patch(_url(schedule["id"]), json={"status": "archived"})
    assert response.status_code == 400


def test_add_update_and_remove_member(schedule):
    members_url = _url(schedule["id"], "/members")

    create_response = client.post(
        members_url,
        json={"personId": "person-diego", "responsibilityId": "resp-vocal"},
        headers={"x-actor": "person-ana"},
    )
    assert create_response.status_code == 201
    member = create_response.json()
    assert member["personName"] == "Diego Alves"
    assert member["responsibilityName"] == "Vocal"
    assert member["status"] == "pending"
    assert member["present"] is None

    duplicate = client.post(
        members_url, json={"personId": "person-diego", "responsibilityId": "resp-sound"}
    )
    assert duplicate.status_code == 409

    update_response = client.patch(
        f"{members_url}/{member['id']}",
        json={"status": "accepted", "present": True},
    )
    assert update_response.status_code == 200
    assert update_response.json()["status"] == "accepted"
    assert update_response.json()["present"] is True

    reset_response = client.patch(f"{members_url}/{member['id']}", json={"present": None})
    assert reset_response.status_code == 200
    assert reset_response.json()["present"] is None
    assert reset_response.json()["status"] == "accepted"

    assert client.delete(f"{members_url}/{member['id']}").status_code == 204
    assert client.delete(f"{members_url}/{member['id']}").status_code == 404

    logs = _logs(schedule["id"])
    assert [entry["changeType"] for entry in logs["data"]] == [
        "member_removed",
        "member_present_changed",
        "member_present_changed",
        "member_status_changed",
        "member_added",
    ]
    added = logs["data"][-1]
    assert added["message"] == "Diego Alves foi adicionado(a) como Vocal"
    assert added["personId"] == "person-diego"
    assert added["scheduleMemberId"] == member["id"]
    assert logs["data"][1]["message"] == (
        'Presença de Diego Alves foi alterada de "Presente" para "Não informado"'
    )


def test_add_member_rejects_people_and_roles_outside_area(schedule):
    members_url = _url(schedule["id"], "/members")

    unknown_person = client.post(
        members_url, json={"personId": "person-zzz", "responsibilityId": "resp-vocal"}
    )
    assert unknown_person.status_code == 404

    unknown_role = client.post(
        members_url, json={"personId": "person-diego", "responsibilityId": "resp-zzz"}
    )
    assert unknown_role.status_code == 404

    missing_field = client.post(members_url, json={"personId": "person-diego"})
    assert missing_field.status_code == 400


def test_existing_member_cannot_be_added_twice(schedule):
    response = client.post(
        _url(schedule["id"], "/members"),
        json={"personId": "person-ana", "responsibilityId": "resp-guitar"},
    )
    assert response.status_code == 409


def test_team_assignments_round_trip(schedule):
    assignments_url = _url(schedule["id"], "/team-assignments")

    create_response = client.post(
        assignments_url,
        json={"personId": "person-felipe", "teamRoleId": "role-sound-operator"},
    )
    assert create_response.status_code == 201
    assignment = create_response.json()
    assert assignment["roleName"] == "Som"
    assert assignment["personName"] == "Felipe Costa"

    details = client.get(_url(schedule["id"])).json()
    assert details["participantsCount"] == 4

    assert client.delete(f"{assignments_url}/{assignment['id']}").status_code == 204
    assert client.delete(f"{assignments_url}/{assignment['id']}").status_code == 404

    messages = [entry["message"] for entry in _logs(schedule["id"])["data"]]
    assert messages == [
        "Felipe Costa foi removido(a) da equipe",
        "Felipe Costa foi adicionado(a) à equipe como Som",
    ]


def test_unknown_team_role_returns_404(schedule):
    response = client.post(
        _url(schedule["id"], "/team-assignments"),
        json={"personId": "person-felipe", "teamRoleId": "role-zzz"},
    )
    assert response.status_code == 404


def test_logs_filter_and_paginate(schedule):
    members_url = _url(schedule["id"], "/members")
    client.post(members_url, json={"personId": "person-diego", "responsibilityId": "resp-vocal"})
    client.post(members_url, json={"personId": "person-elisa", "responsibilityId": "resp-guitar"})
    client.patch(_url(schedule["id"]), json={"status": "cancelled"})

    everything = _logs(schedule["id"])
    assert everything["meta"]["total"] == 3
    assert everything["data"][0]["changeType"] == "schedule_status_changed"

    by_type = _logs(schedule["id"], changeType="member_added")
    assert by_type["meta"]["total"] == 2

    by_person = _logs(schedule["id"], personId="person-elisa")
    assert [entry["personId"] for entry in by_person["data"]] == ["person-elisa"]

    paged = _logs(schedule["id"], page=2, limit=2)
    assert len(paged["data"]) == 1
    assert paged["meta"]["totalPages"] == 2
    assert paged["data"][0]["changeType"] == "member_added"


def test_logs_reject_unknown_change_type(schedule):
    response = client.get(_url(schedule["id"], "/logs"), params={"changeType": "nope"})
    assert response.status_code == 400


def test_logs_for_unknown_schedule_return_404(schedule):
    response = client.get(_url("missing", "/logs"))
    assert response.status_code == 404
