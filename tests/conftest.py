"""Shared fixtures: in-memory blob store and a fake ffmpeg."""

from __future__ import annotations

import json
import os
import subprocess
from typing import Callable, Iterable

import pytest

from stitcher.core.errors import StorageError
from stitcher.schemas.job import StitchJob
from stitcher.storage import BlobStore, paths
from stitcher.workers import ffmpeg_runner
from stitcher.workers.fetcher import RetryPolicy

BUCKET = "recordings"


class MemoryStorage(BlobStore):
    """Dict-backed blob store that can be told to fail."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.transient_failures: dict[str, int] = {}
        self.failing_uploads: set[str] = set()
        self.failing_removes: set[str] = set()
        self.downloads: list[str] = []
        self.uploads: list[str] = []
        self.closed = 0

    def put(self, bucket: str, path: str, data: bytes) -> None:
        self.objects[(bucket, path)] = data

    def get(self, bucket: str, path: str) -> bytes | None:
        return self.objects.get((bucket, path))

    def download(self, bucket: str, path: str) -> bytes:
        self.downloads.append(path)
        remaining = self.transient_failures.get(path, 0)
        if remaining:
            self.transient_failures[path] = remaining - 1
            raise StorageError(f"connection reset: {path}")
        if (bucket, path) not in self.objects:
            raise StorageError(f"Object not found: {path}", status_code=404)
        return self.objects[(bucket, path)]

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> None:
        if path in self.failing_uploads:
            raise StorageError(f"upload rejected: {path}", status_code=500)
        self.uploads.append(path)
        self.objects[(bucket, path)] = data

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        for path in paths:
            if path in self.failing_removes:
                raise StorageError(f"remove rejected: {path}")
            self.objects.pop((bucket, path), None)

    def public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.test/public/{bucket}/{path}"

    def close(self) -> None:
        self.closed += 1


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, unit_delay=0)


@pytest.fixture
def make_job() -> Callable[..., StitchJob]:
    def _make(session_id: str = "session-1", **overrides) -> StitchJob:
        return StitchJob(session_id=session_id, bucket=BUCKET, **overrides)

    return _make


@pytest.fixture
def seed_session(storage: MemoryStorage) -> Callable[..., None]:
    """Upload stats, frames and audio chunks for a session."""

    def _seed(
        session_id: str = "session-1",
        frames: int = 10,
        chunks: int = 0,
        missing_frames: Iterable[int] = (),
        missing_chunks: Iterable[int] = (),
        duration_ms: float | None = None,
        actual_frame_rate: float | None = None,
        video_folder: str = "composite-video",
        audio_folder: str = "composite-audio",
    ) -> None:
        recording = {"totalFrames": frames, "totalAudioChunks": chunks}
        if duration_ms is not None:
            recording["duration"] = duration_ms
        document = {"recordingStats": recording}
        if actual_frame_rate is not None:
            document["stitchingInfo"] = {"actualFrameRate": actual_frame_rate}
        storage.put(BUCKET, paths.stats_path(session_id), json.dumps(document).encode())

        skip_frames = set(missing_frames)
        for i in range(1, frames + 1):
            if i not in skip_frames:
                storage.put(
                    BUCKET,
                    paths.frame_path(video_folder, session_id, i),
                    f"jpeg-{i}".encode(),
                )
        skip_chunks = set(missing_chunks)
        for i in range(1, chunks + 1):
            if i not in skip_chunks:
                storage.put(
                    BUCKET,
                    paths.audio_chunk_path(audio_folder, session_id, i),
                    f"wav-{i}".encode(),
                )

    return _seed


class FakeFFmpeg:
    """Stands in for subprocess.run: records commands and writes the output file."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.sequence_listings: list[list[str]] = []
        self.fail_on: str | None = None

    def __call__(self, cmd, capture_output=True, text=True, **kwargs):
        self.commands.append(list(cmd))
        if "-start_number" in cmd:
            pattern = cmd[cmd.index("-i") + 1]
            self.sequence_listings.append(sorted(os.listdir(os.path.dirname(pattern))))
        if self.fail_on and self.fail_on in cmd[-1]:
            return subprocess.CompletedProcess(cmd, 1, "", "Error opening input\nConversion failed!")
        with open(cmd[-1], "wb") as f:
            f.write(b"media")
        return subprocess.CompletedProcess(cmd, 0, "", "")

    @property
    def outputs(self) -> list[str]:
        return [os.path.basename(cmd[-1]) for cmd in self.commands]


@pytest.fixture
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch) -> FakeFFmpeg:
    fake = FakeFFmpeg()
    monkeypatch.setattr(ffmpeg_runner.subprocess, "run", fake)
    return fake
