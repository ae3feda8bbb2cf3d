# tests/test_api.py

from __future__ import annotations

import json
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from taskhub.core.config import Settings
from taskhub.core.constants import FileDisposition
from taskhub.main import API_PREFIX, create_app

TASKS = f"{API_PREFIX}/tasks"
UPLOADS = f"{API_PREFIX}/uploads"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL_OVERRIDE=f"sqlite+aiosqlite:///{tmp_path / 'api.sqlite3'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_DIR=str(tmp_path / "logs"),
        MAX_UPLOAD_BYTES=4096,
        APP_ENV="test",
    )


@pytest.fixture()
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def wait_for(predicate, timeout: float = 5.0):
    """Poll until the background ingestion has produced a result."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(0.02)
    raise AssertionError("condition not met before timeout")


def upload(client: TestClient, payload, name: str = "tasks.json"):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return client.post(UPLOADS, files={"file": (name, body, "application/json")})


def outcome_lines(settings: Settings) -> list[str]:
    path = Path(settings.LOG_DIR) / "ingestion.log"
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").splitlines()


# ─── CRUD ──────────────────────────────────────────


def test_health_reports_ingestion(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["ingestion"]["running"] is True


def test_create_get_update_delete(client: TestClient) -> None:
    created = client.post(TASKS, json={"title": "write tests"})
    assert created.status_code == 201
    task = created.json()
    assert task["completed"] is False
    assert task["extra"] == {}

    task_url = f"{TASKS}/{task['id']}"
    assert client.get(task_url).json()["title"] == "write tests"

    patched = client.patch(task_url, json={"completed": True})
    assert patched.status_code == 200
    assert patched.json()["completed"] is True
    assert patched.json()["title"] == "write tests"

    replaced = client.put(task_url, json={"title": "t2", "description": "d2", "completed": False})
    assert replaced.json()["title"] == "t2"
    assert replaced.json()["description"] == "d2"

    assert client.delete(task_url).status_code == 204
    assert client.get(task_url).status_code == 404
    assert client.delete(task_url).status_code == 404


def test_explicit_id_conflict(client: TestClient) -> None:
    assert client.post(TASKS, json={"id": 5, "title": "a"}).status_code == 201
    assert client.post(TASKS, json={"id": 5, "title": "b"}).status_code == 409


def test_list_filters_by_completion(client: TestClient) -> None:
    client.post(TASKS, json={"title": "open"})
    client.post(TASKS, json={"title": "done", "completed": True})

    body = client.get(TASKS, params={"completed": True}).json()
    assert [t["title"] for t in body["data"]] == ["done"]
    assert body["total"] == 1


def test_create_rejects_out_of_range_id(client: TestClient) -> None:
    assert client.post(TASKS, json={"id": 0, "title": "a"}).status_code == 422


# ─── Uploads ───────────────────────────────────────


def test_upload_is_accepted_and_ingested(client: TestClient, settings: Settings) -> None:
    response = upload(client, [
        {"id": "7", "title": "a", "description": "d", "completed": False, "owner": "ops"},
    ])

    assert response.status_code == 202
    body = response.json()
    assert body["message"] == "File uploaded and processing started."

    def fetched():
        response = client.get(f"{TASKS}/7")
        return response.json() if response.status_code == 200 else None

    task = wait_for(fetched)
    assert task["title"] == "a"
    assert task["extra"] == {"owner": "ops"}

    wait_for(lambda: outcome_lines(settings))
    assert not (Path(settings.UPLOAD_DIR) / body["file_name"]).exists()
    assert " - DONE - " in outcome_lines(settings)[0]


def test_invalid_upload_leaves_store_untouched(client: TestClient, settings: Settings) -> None:
    response = upload(client, [{"id": "x", "title": "a", "description": "d", "completed": False}])
    assert response.status_code == 202

    [line] = wait_for(lambda: outcome_lines(settings))
    assert " - FAILED - InvalidIdentifier" in line
    assert client.get(TASKS).json()["total"] == 0
    assert (Path(settings.UPLOAD_DIR) / response.json()["file_name"]).exists()


def test_upload_without_file_is_rejected(client: TestClient) -> None:
    assert client.post(UPLOADS).status_code == 400


def test_upload_over_size_limit_is_rejected(client: TestClient, settings: Settings) -> None:
    response = upload(client, b"[" + b" " * 8192 + b"]")

    assert response.status_code == 413
    assert list(Path(settings.UPLOAD_DIR).iterdir()) == []


def test_rejected_upload_is_deleted_and_answered_503(client: TestClient, settings: Settings, monkeypatch) -> None:
    ingestion = client.app.state.ingestion
    client.portal.call(ingestion.dispatcher.aclose)

    stored: list[Path] = []
    real_store = ingestion.files.store_upload

    def recording_store(stream, filename):
        path = real_store(stream, filename)
        stored.append(path)
        return path

    monkeypatch.setattr(ingestion.files, "store_upload", recording_store)

    response = upload(client, [{"id": 1, "title": "a", "description": "d", "completed": False}])

    assert response.status_code == 503
    [path] = stored
    assert not path.exists()
    assert ingestion.files.disposition(path) == FileDisposition.DELETED
    assert list(Path(settings.UPLOAD_DIR).iterdir()) == []
    assert outcome_lines(settings) == []


def test_list_total_counts_beyond_the_page(client: TestClient) -> None:
    for i in range(3):
        client.post(TASKS, json={"title": f"t{i}", "completed": i == 0})

    body = client.get(TASKS, params={"limit": 1}).json()
    assert len(body["data"]) == 1
    assert body["total"] == 3

    body = client.get(TASKS, params={"completed": False, "limit": 1}).json()
    assert body["total"] == 2


# ─── Request log ───────────────────────────────────


def request_log(settings: Settings) -> list[dict]:
    path = Path(settings.LOG_DIR) / "requests.log"
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_requests_are_written_to_the_request_log(client: TestClient, settings: Settings) -> None:
    client.get(f"{TASKS}/999")

    [entry] = [e for e in request_log(settings) if e.get("path") == f"{TASKS}/999"]
    assert entry["event"] == "Request handled"
    assert entry["status"] == 404


def test_failing_request_is_still_logged(settings: Settings) -> None:
    app = create_app(settings)

    @app.get("/explode")
    async def explode():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/explode")

    assert response.status_code == 500
    assert response.json() == {"error": "An unexpected error occurred"}
    entries = [e for e in request_log(settings) if e.get("path") == "/explode"]
    assert {e["event"] for e in entries} == {"Request handled", "Unhandled error"}
    assert [e["status"] for e in entries if e["event"] == "Request handled"] == [500]
