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
BASE = f"/scheduled-areas/{AREA}/schedule-generations"


@pytest.fixture
def schedule_repo(monkeypatch):
    repo = InMemoryScheduleRepository()
    monkeypatch.setattr("roster.router.get_schedule_repository", lambda: repo)
    monkeypatch.setattr(
        "roster.router.get_log_repository", lambda: InMemoryScheduleLogRepository()
    )
    return repo


def _payload(**group_config) -> dict[str, object]:
    group_config.setdefault("groupIds", ["group-a", "group-b"])
    return {
        "generationType": "group",
        "periodType": "daily",
        "periodStartDate": "2025-01-06",
        "periodEndDate": "2025-01-10",
        "periodConfig": {"weekdays": [1, 2, 3, 4, 5]},
        "groupConfig": group_config,
    }


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_preview_returns_instances_and_summary():
    response = client.post(f"{BASE}/preview", json=_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["totalSchedules"] == 5
    assert data["summary"]["totalParticipants"] == 6
    assert data["summary"]["distributionBalance"] == "balanced"
    assert [schedule["groups"][0]["id"] for schedule in data["schedules"]] == [
        "group-a",
        "group-b",
        "group-a",
        "group-b",
        "group-a",
    ]
    first = data["schedules"][0]
    assert first["startDatetime"].startswith("2025-01-06T08:00:00")
    assert first["groups"][0]["members"][0]["personName"] == "Ana Souza"
    assert data["configuration"]["groupConfig"]["distributionOrder"] == "sequential"


def test_preview_surfaces_absences_as_warnings():
    response = client.post(f"{BASE}/preview", json=_payload(considerAbsences=True))

    assert response.status_code == 200
    schedules = response.json()["schedules"]
    thursday = schedules[3]
    assert thursday["groups"][0]["id"] == "group-b"
    assert thursday["warnings"] == [
        "Elisa Rocha is absent and was removed from group Equipe B"
    ]
    names = [member["personName"] for member in thursday["groups"][0]["members"]]
    assert "Elisa Rocha" not in names
    assert schedules[1]["warnings"] == []


def test_preview_embeds_errors_for_unknown_groups():
    response = client.post(f"{BASE}/preview", json=_payload(groupIds=["group-zzz"]))

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["distributionBalance"] == "critical"
    assert data["schedules"][0]["errors"] == [
        "Group group-zzz not found in this scheduled area",
        "No groups available for this schedule",
    ]


def test_preview_unknown_area_returns_404():
    response = client.post(
        "/scheduled-areas/unknown/schedule-generations/preview", json=_payload()
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Scheduled area not found"


def test_preview_missing_sub_configuration_returns_400():
    payload = _payload()
    payload.pop("groupConfig")

    response = client.post(f"{BASE}/preview", json=payload)

    assert response.status_code == 400
    assert "groupConfig" in response.json()["detail"]


def test_preview_inverted_period_returns_400():
    payload = _payload()
    payload["periodEndDate"] = "2025-01-01"

    response = client.post(f"{BASE}/preview", json=payload)

    assert response.status_code == 400


def test_preview_non_object_body_returns_400():
    response = client.post(f"{BASE}/preview", json=["not", "an", "object"])
    assert response.status_code == 400


def test_create_list_get_and_delete_generation(schedule_repo):
    create_response = client.post(
        BASE, json=_payload(), headers={"x-actor": "person-ana"}
    )
    assert create_response.status_code == 201
    generation = create_response.json()
    generation_id = generation["id"]
    assert generation["totalSchedulesGenerated"] == 5
    assert generation["createdBy"] == "person-ana"
    assert len(generation["schedules"]) == 5
    assert generation["schedules"][0]["participantsCount"] == 3

    list_response = client.get(BASE)
    assert list_response.status_code == 200
    listing = list_response.json()
    assert listing["meta"] == {"page": 1, "limit": 10, "total": 1, "totalPages": 1}
    assert listing["data"][0]["id"] == generation_id

    get_response = client.get(f"{BASE}/{generation_id}")
    assert get_response.status_code == 200
    fetched = get_response.json()
    assert [schedule["id"] for schedule in fetched["schedules"]] == [
        schedule["id"] for schedule in generation["schedules"]
    ]

    delete_response = client.delete(f"{BASE}/{generation_id}")
    assert delete_response.status_code == 204

    assert client.get(f"{BASE}/{generation_id}").status_code == 404
    assert client.delete(f"{BASE}/{generation_id}").status_code == 404
    schedule_id = generation["schedules"][0]["id"]
    assert (
        client.get(f"/scheduled-areas/{AREA}/schedules/{schedule_id}").status_code == 404
    )


def test_create_with_preview_errors_returns_400_and_stores_nothing(schedule_repo):
    response = client.post(BASE, json=_payload(groupIds=["group-a", "group-zzz"]))

    assert response.status_code == 400
    assert response.json()["detail"] == (
        "Cannot create schedules with errors. Please fix the configuration."
    )
    assert client.get(BASE).json()["meta"]["total"] == 0


def test_list_generations_clamps_paging(schedule_repo):
    for _ in range(3):
        assert client.post(BASE, json=_payload()).status_code == 201

    response = client.get(BASE, params={"page": 0, "limit": 500})
    assert response.status_code == 200
    meta = response.json()["meta"]
    assert meta["page"] == 1
    assert meta["limit"] == 100
    assert meta["total"] == 3

    second_page = client.get(BASE, params={"page": 2, "limit": 2}).json()
    assert len(second_page["data"]) == 1
    assert second_page["meta"]["totalPages"] == 2


def test_list_generations_unknown_area_returns_404():
    response = client.get("/scheduled-areas/unknown/schedule-generations")
    assert response.status_code == 404
