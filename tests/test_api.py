"""Tests for the HTTP front door."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from stitcher.api import routes
from stitcher.core.errors import StorageError
from stitcher.main import app
from stitcher.storage import paths

from conftest import BUCKET


@pytest.fixture
def submitted(monkeypatch: pytest.MonkeyPatch) -> list:
    jobs = []
    monkeypatch.setattr(routes, "process_stitch_job", jobs.append)
    return jobs


@pytest.fixture
def client(storage) -> TestClient:
    app.dependency_overrides[routes.get_blob_store] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_stitch_acknowledges_and_schedules_job(client: TestClient, submitted: list) -> None:
    response = client.post(
        "/stitch",
        json={
            "sessionId": "abc-123",
            "bucket": BUCKET,
            "frameRate": 10,
            "sampleRate": 48000,
            "useVerticalCrop": "true",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "processing"
    assert body["sessionId"] == "abc-123"

    assert len(submitted) == 1
    job = submitted[0]
    assert job.session_id == "abc-123"
    assert job.vertical_crop is True
    assert job.has_audio is True
    assert job.requested_frame_rate == 10
    assert job.sample_rate == 48000
    assert job.video_folder == "composite-video"
    assert job.audio_folder == "composite-audio"
    assert job.output_folder == "composite-stitched"


def test_stitch_respects_explicit_flags_and_folders(client: TestClient, submitted: list) -> None:
    client.post(
        "/stitch",
        json={
            "sessionId": "abc",
            "bucket": BUCKET,
            "hasAudio": False,
            "useVerticalCrop": False,
            "videoStorageFolder": "v",
            "audioStorageFolder": "a",
            "stitchedOutputFolder": "o",
        },
    )

    job = submitted[0]
    assert job.has_audio is False
    assert job.vertical_crop is False
    assert (job.video_folder, job.audio_folder, job.output_folder) == ("v", "a", "o")


def test_null_has_audio_defaults_to_true(client: TestClient, submitted: list) -> None:
    client.post("/stitch", json={"sessionId": "abc", "bucket": BUCKET, "hasAudio": None})

    assert submitted[0].has_audio is True


@pytest.mark.parametrize(
    "body",
    [
        {"bucket": BUCKET},
        {"sessionId": "abc"},
        {"sessionId": "", "bucket": BUCKET},
        {"sessionId": "../escape", "bucket": BUCKET},
        {"sessionId": "..", "bucket": BUCKET},
        {"sessionId": ".", "bucket": BUCKET},
    ],
)
def test_invalid_request_rejected(client: TestClient, submitted: list, body: dict) -> None:
    response = client.post("/stitch", json=body)

    assert response.status_code == 422
    assert submitted == []


def test_status_returns_completion(client: TestClient, storage) -> None:
    storage.put(BUCKET, paths.completion_path("abc"), json.dumps({"status": "completed"}).encode())

    response = client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.status_code == 200
    assert response.json() == {"status": "completed"}


def test_status_returns_failure(client: TestClient, storage) -> None:
    storage.put(BUCKET, paths.error_path("abc"), json.dumps({"status": "failed"}).encode())

    response = client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.json()["status"] == "failed"


def test_status_not_found_while_running(client: TestClient) -> None:
    response = client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.status_code == 404


def test_status_reports_storage_outage(client: TestClient, storage) -> None:
    storage.transient_failures[paths.completion_path("abc")] = 1

    response = client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.status_code == 502


def test_status_without_storage_config(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken():
        raise StorageError("SUPABASE_URL is not configured")

    monkeypatch.setattr(routes, "get_storage", broken)

    response = TestClient(app).get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.status_code == 503


def test_status_rejects_corrupt_document(client: TestClient, storage) -> None:
    storage.put(BUCKET, paths.completion_path("abc"), b"{not json")

    response = client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert response.status_code == 502
    assert "completion.json" in response.json()["detail"]


def test_status_closes_storage_after_each_request(monkeypatch: pytest.MonkeyPatch) -> None:
    from conftest import MemoryStorage

    created = []

    def make_storage():
        created.append(MemoryStorage())
        return created[-1]

    monkeypatch.setattr(routes, "get_storage", make_storage)
    client = TestClient(app)

    for _ in range(3):
        client.get("/stitch/abc/status", params={"bucket": BUCKET})

    assert len(created) == 3
    assert [store.closed for store in created] == [1, 1, 1]
