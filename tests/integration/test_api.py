"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from conftest import SAMPLE_SCRIPT
from scriptboard.api.dependencies import get_container
from scriptboard.main import app

HEADERS = {"X-User-ID": "alice"}


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, process=True):
    response = client.post(
        "/projects", json={"title": "Coffee", "script": SAMPLE_SCRIPT, "process": process}, headers=HEADERS
    )
    assert response.status_code == 201
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_requests_without_user_are_rejected(client):
    assert client.get("/projects").status_code == 401


def test_create_runs_pipeline_in_background(client):
    project = _create(client)

    detail = client.get(f"/projects/{project['id']}", headers=HEADERS).json()

    assert detail["project"]["status"] == "ready"
    assert len(detail["segments"]) == 2
    assert [p["id"] for p in client.get("/projects", headers=HEADERS).json()] == [project["id"]]


def test_other_users_get_not_found(client):
    project = _create(client, process=False)

    response = client.get(f"/projects/{project['id']}", headers={"X-User-ID": "mallory"})

    assert response.status_code == 404
    assert response.json()["reason"] == "project_not_found"


def test_short_script_is_bad_request(client):
    response = client.post("/projects", json={"title": "Coffee", "script": "Too short"}, headers=HEADERS)

    assert response.status_code == 400
    assert response.json()["reason"] == "validation_error"


def test_storyboard_before_processing_is_bad_request(client):
    project = _create(client, process=False)

    assert client.get(f"/projects/{project['id']}/storyboard", headers=HEADERS).status_code == 400


def test_optimize_twice_is_conflict(client):
    project = _create(client, process=False)

    first = client.post(f"/projects/{project['id']}/optimize", headers=HEADERS)
    second = client.post(f"/projects/{project['id']}/optimize", headers=HEADERS)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert second.status_code == 409
    assert second.json()["reason"] == "invalid_transition"


def test_segment_editing_flow(client):
    project = _create(client)
    detail = client.get(f"/projects/{project['id']}", headers=HEADERS).json()
    first, second = detail["segments"]
    base = f"/projects/{project['id']}/segments"

    suggestion = first["suggestions"][0]
    selected = client.put(
        f"{base}/{first['id']}/asset",
        json={"provider": suggestion["provider"], "provider_asset_id": suggestion["provider_asset_id"]},
        headers=HEADERS,
    )
    assert selected.status_code == 200
    assert selected.json()["segment"]["asset_status"] == "has_asset"
    assert "duration_check" in selected.json()

    placeholder = client.put(f"{base}/{second['id']}/placeholder", json={"color": "#112233"}, headers=HEADERS)
    assert placeholder.json()["asset_status"] == "placeholder"

    summary = client.get(f"/projects/{project['id']}/storyboard", headers=HEADERS).json()
    assert summary["has_asset"] == 1
    assert summary["placeholder"] == 1
    assert summary["can_render"] is False

    render = client.post(f"/projects/{project['id']}/render", headers=HEADERS)
    assert render.status_code == 422
    assert render.json()["reason"] == "placeholder_threshold"


def test_unknown_segment_is_not_found(client):
    project = _create(client)

    response = client.put(
        f"/projects/{project['id']}/segments/nope/silence", json={"is_silent": True}, headers=HEADERS
    )

    assert response.status_code == 404
    assert response.json()["reason"] == "segment_not_found"


def test_render_round_trip(client):
    project = _create(client)

    assert client.post(f"/projects/{project['id']}/render", headers=HEADERS).json()["status"] == "rendering"
    assert client.delete(f"/projects/{project['id']}", headers=HEADERS).status_code == 400

    done = client.post(f"/projects/{project['id']}/render/complete", json={"success": True}, headers=HEADERS)
    assert done.json()["status"] == "completed"

    assert client.delete(f"/projects/{project['id']}", headers=HEADERS).status_code == 204


def test_segment_narration(client):
    project = _create(client)
    segment = client.get(f"/projects/{project['id']}", headers=HEADERS).json()["segments"][0]

    result = client.post(f"/projects/{project['id']}/segments/{segment['id']}/tts", json={}, headers=HEADERS).json()
    again = client.post(f"/projects/{project['id']}/segments/{segment['id']}/tts", json={}, headers=HEADERS).json()

    assert result["cached"] is False
    assert again["cached"] is True
    assert again["audio_url"] == result["audio_url"]


def test_preview(client):
    response = client.post("/projects/preview", json={"script": SAMPLE_SCRIPT}, headers=HEADERS)

    assert response.status_code == 200
    assert len(response.json()["optimized_texts"]) == 2


def test_jobs_listed(client):
    project = _create(client)

    jobs = client.get(f"/projects/{project['id']}/jobs", headers=HEADERS).json()

    assert [j["job_type"] for j in jobs] == ["optimization", "optimization", "assets", "assets"]
