"""Tests for frame rate resolution and stats loading."""

from __future__ import annotations

import json

import pytest

from stitcher.core.errors import MetadataNotFound
from stitcher.schemas.metadata import RecordingStats
from stitcher.storage import paths
from stitcher.workers.metadata import (
    DEFAULT_FRAME_RATE,
    load_recording_stats,
    parse_recording_stats,
    resolve_frame_rate,
    resolve_timing,
)

from conftest import BUCKET


def _stats(**recording) -> RecordingStats:
    stitching = recording.pop("stitching", None)
    document = {"recordingStats": recording}
    if stitching is not None:
        document["stitchingInfo"] = stitching
    return RecordingStats.model_validate(document)


def test_metadata_actual_rate_wins_over_duration_and_request() -> None:
    stats = _stats(totalFrames=300, durationSeconds=20, stitching={"actualFrameRate": 12.3})

    timing = resolve_frame_rate(stats, requested_frame_rate=10)

    assert timing.frame_rate == pytest.approx(12.3)
    assert timing.source == "metadata"
    assert not timing.clamped


def test_rate_derived_from_frames_and_duration() -> None:
    stats = _stats(totalFrames=300, durationSeconds=20)

    timing = resolve_frame_rate(stats, requested_frame_rate=10)

    assert timing.frame_rate == pytest.approx(15.0)
    assert timing.source == "duration"


def test_duration_falls_back_to_milliseconds() -> None:
    stats = _stats(totalFrames=300, duration=20000)

    assert stats.duration_seconds == pytest.approx(20.0)
    assert resolve_frame_rate(stats).frame_rate == pytest.approx(15.0)


def test_zero_duration_seconds_falls_back_to_milliseconds() -> None:
    stats = _stats(totalFrames=100, durationSeconds=0, duration=10000)

    assert resolve_frame_rate(stats).frame_rate == pytest.approx(10.0)


def test_request_rate_used_without_metadata_timing() -> None:
    stats = _stats(totalFrames=300)

    timing = resolve_frame_rate(stats, requested_frame_rate=10)

    assert timing.frame_rate == 10
    assert timing.source == "request"


def test_default_rate_when_nothing_is_known() -> None:
    timing = resolve_frame_rate(_stats(totalFrames=300))

    assert timing.frame_rate == DEFAULT_FRAME_RATE == 5
    assert timing.source == "default"


@pytest.mark.parametrize("actual", [0, -3, 60, 75])
def test_out_of_range_metadata_rate_is_ignored(actual: float) -> None:
    stats = _stats(totalFrames=300, durationSeconds=20, stitching={"actualFrameRate": actual})

    assert resolve_frame_rate(stats).source == "duration"


@pytest.mark.parametrize("requested", [0, 60, 120])
def test_out_of_range_request_rate_is_ignored(requested: float) -> None:
    assert resolve_frame_rate(_stats(totalFrames=10), requested).source == "default"


def test_low_rate_is_clamped_up() -> None:
    # 2 frames over 10 seconds -> 0.2 fps
    timing = resolve_frame_rate(_stats(totalFrames=2, durationSeconds=10))

    assert timing.frame_rate == 0.5
    assert timing.clamped


def test_high_rate_is_clamped_down() -> None:
    # 750 frames over 10 seconds -> 75 fps
    timing = resolve_frame_rate(_stats(totalFrames=750, durationSeconds=10))

    assert timing.frame_rate == 60
    assert timing.clamped


def test_parse_rejects_invalid_json() -> None:
    with pytest.raises(MetadataNotFound):
        parse_recording_stats(b"{not json")


def test_parse_rejects_missing_recording_section() -> None:
    with pytest.raises(MetadataNotFound):
        parse_recording_stats(json.dumps({"stitchingInfo": {}}).encode())


def test_parse_rejects_wrong_types() -> None:
    with pytest.raises(MetadataNotFound):
        parse_recording_stats(json.dumps({"recordingStats": {"totalFrames": "many"}}).encode())


def test_parse_tolerates_null_fields() -> None:
    stats = parse_recording_stats(
        json.dumps(
            {
                "recordingStats": {"totalFrames": 12, "totalAudioChunks": None},
                "stitchingInfo": None,
            }
        ).encode()
    )

    assert stats.total_frames == 12
    assert stats.total_audio_chunks == 0
    assert stats.actual_frame_rate is None


def test_load_missing_document_raises(storage, make_job, no_wait_policy) -> None:
    with pytest.raises(MetadataNotFound):
        load_recording_stats(storage, make_job(), no_wait_policy)

    # Retried like any other asset
    assert storage.downloads.count(paths.stats_path("session-1")) == 3


def test_load_empty_document_raises(storage, make_job, no_wait_policy) -> None:
    storage.put(BUCKET, paths.stats_path("session-1"), b"")

    with pytest.raises(MetadataNotFound):
        load_recording_stats(storage, make_job(), no_wait_policy)


def test_resolve_timing_reads_stats_from_store(
    storage, seed_session, make_job, no_wait_policy
) -> None:
    seed_session(frames=300, duration_ms=20000)

    timing, stats = resolve_timing(storage, make_job(requested_frame_rate=8), no_wait_policy)

    assert stats.total_frames == 300
    assert timing.frame_rate == pytest.approx(15.0)
