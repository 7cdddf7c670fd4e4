from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from process_workload.server.app import create_app

_STEPS = [
    {"id": "s-work", "kind": "process", "attributes": {"label": "Receive order", "duration": 10}},
    {"id": "s-wait", "kind": "wait", "attributes": {"label": "Wait for approval", "duration": 90}},
    {"id": "s-move", "kind": "transport", "attributes": {"duration": 5, "recurrence": 2}},
]


@pytest.fixture
def client(data_path: Path) -> TestClient:
    return TestClient(create_app())


def _create_project(client: TestClient) -> dict:
    response = client.post(
        "/api/projects",
        json={
            "name": "Order handling",
            "description": "From order to delivery",
            "steps": _STEPS,
            "edges": [{"source": "s-work", "target": "s-wait"}],
        },
    )
    assert response.status_code == 201
    return response.json()


def test_health(client: TestClient) -> None:
    health = client.get("/api/health").json()

    assert health["status"] == "ok"
    assert "version" in health


def test_project_crud(client: TestClient, data_path: Path) -> None:
    created = _create_project(client)
    project_id = created["id"]

    assert [s["kind"] for s in created["steps"]] == ["work", "wait", "transport"]
    assert created["steps"][2]["attributes"]["label"] == "Transport"
    assert (data_path / "projects" / f"{project_id}.json").exists()

    listed = client.get("/api/projects").json()
    assert [p["id"] for p in listed] == [project_id]

    fetched = client.get(f"/api/projects/{project_id}").json()
    assert fetched["name"] == "Order handling"
    assert fetched["edges"][0]["source"] == "s-work"

    updated = client.put(f"/api/projects/{project_id}", json={"name": "Renamed"}).json()
    assert updated["name"] == "Renamed"
    assert len(updated["steps"]) == 3

    assert client.delete(f"/api/projects/{project_id}").status_code == 200
    assert client.get(f"/api/projects/{project_id}").status_code == 404
    assert client.delete(f"/api/projects/{project_id}").status_code == 404


def test_invalid_projects_are_rejected(client: TestClient) -> None:
    response = client.post("/api/projects", json={"name": "   "})
    assert response.status_code == 422
    assert response.json()["detail"]["errors"]["name"] == "Project name is required"

    created = _create_project(client)
    too_long = client.put(f"/api/projects/{created['id']}", json={"name": "x" * 101})
    assert too_long.status_code == 422

    assert client.get("/api/projects/missing/workload").status_code == 404


def test_project_workload(client: TestClient) -> None:
    project_id = _create_project(client)["id"]

    workload = client.get(f"/api/projects/{project_id}/workload").json()

    assert workload["total_hours"] == 458.3
    assert workload["total_days"] == 57.3
    assert workload["category_totals"]["wait"] == 375.0
    assert workload["category_totals"]["storage"] == 0.0
    assert [d["step_id"] for d in workload["step_details"]] == ["s-work", "s-wait", "s-move"]


def test_workload_uses_calendar_settings(monkeypatch: pytest.MonkeyPatch, data_path: Path) -> None:
    monkeypatch.setenv("PROCESS_WORKLOAD_CALC_BUSINESS_DAYS_PER_YEAR", "200")
    client = TestClient(create_app())

    response = client.post(
        "/api/workload", json={"steps": [{"kind": "work", "attributes": {"duration": 60}}]}
    )

    assert response.status_code == 200
    assert response.json()["total_hours"] == 200.0


def test_adhoc_workload_skips_unusable_numbers(client: TestClient) -> None:
    # 1e400 is read as infinity by the JSON parser.
    body = (
        '{"steps": ['
        '{"kind": "work", "attributes": {"duration": 1e400}},'
        '{"kind": "work", "attributes": {"duration": "nan"}},'
        '{"kind": "work", "attributes": {"duration": 1e307, "duration_unit": "day"}},'
        '{"kind": "wait", "attributes": {"duration": 90}}'
        "]}"
    )

    response = client.post(
        "/api/workload", content=body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    workload = response.json()
    assert workload["total_hours"] == 375.0
    assert workload["category_totals"]["work"] == 0.0
    assert len(workload["step_details"]) == 1


def test_adhoc_workload_coerces_unknown_kinds(client: TestClient) -> None:
    response = client.post(
        "/api/workload", json={"steps": [{"kind": "teleport", "attributes": {"duration": 60}}]}
    )

    assert response.status_code == 200
    assert response.json()["category_totals"]["work"] == 250.0


def test_strict_kinds_reject_unknown_kinds(monkeypatch: pytest.MonkeyPatch, data_path: Path) -> None:
    monkeypatch.setenv("PROCESS_WORKLOAD_STRICT_KINDS", "true")
    client = TestClient(create_app())

    response = client.post("/api/workload", json={"steps": [{"kind": "teleport"}]})

    assert response.status_code == 422


def test_suggestions_and_simulation(client: TestClient) -> None:
    project_id = _create_project(client)["id"]

    suggestions = client.get(
        f"/api/projects/{project_id}/suggestions", params={"step_id": "s-wait"}
    ).json()
    assert [s["title"] for s in suggestions] == [
        "Automate this step",
        "Parallelize approvals",
        "Notify in real time",
    ]
    assert all(s["target_step_id"] == "s-wait" for s in suggestions)

    response = client.post(
        f"/api/projects/{project_id}/simulate",
        json={"candidates": [suggestions[1]], "include_roi": True},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["result"]["before"]["total_hours"] == 458.3
    assert body["result"]["after"]["total_hours"] == 233.3
    assert body["result"]["savings"] == {"hours": 225.0, "days": 28.1, "percent": 49.1}
    assert body["result"]["applied"] == [suggestions[1]["id"]]
    assert body["roi"][0]["step_id"] == "s-wait"
    assert body["roi"][0]["roi"]["hourly_rate"] == 3000


def test_suggestions_for_target_steps_only(client: TestClient) -> None:
    project_id = _create_project(client)["id"]

    suggestions = client.get(
        f"/api/projects/{project_id}/suggestions", params={"targets_only": True}
    ).json()

    # The 10 minute work step stays under the time threshold.
    assert {s["target_step_id"] for s in suggestions} == {"s-wait", "s-move"}
    assert client.get(
        f"/api/projects/{project_id}/suggestions", params={"step_id": "missing"}
    ).status_code == 404


def test_improvement_library(client: TestClient) -> None:
    project_id = _create_project(client)["id"]
    assert client.get("/api/improvements").json() == []

    saved = client.post(
        "/api/improvements",
        json={
            "title": "Batch approvals",
            "description": "Approve once a day in a batch",
            "target_step_kind": "wait",
            "keywords": "approval, batch",
            "time_reduction_percent": 40,
        },
    )
    assert saved.status_code == 200
    entries = saved.json()
    assert [e["title"] for e in entries] == ["Batch approvals"]
    assert entries[0]["created_at"] is not None

    suggestions = client.get(
        f"/api/projects/{project_id}/suggestions", params={"step_id": "s-wait"}
    ).json()
    assert suggestions[0]["title"] == "Batch approvals"
    assert suggestions[0]["target_step_id"] == "s-wait"


def test_invalid_improvement_is_rejected(client: TestClient) -> None:
    response = client.post("/api/improvements", json={"title": "No description"})

    assert response.status_code == 422
    assert "description" in response.json()["detail"]["errors"]
    assert client.get("/api/improvements").json() == []
