"""
Metadata Resolver - loads final_stats.json and settles on one frame rate.

Frame rate priority (first usable candidate wins):
    1. stitchingInfo.actualFrameRate, if 0 < rate < 60
    2. totalFrames / durationSeconds (durationSeconds falls back to duration / 1000)
    3. the frame rate sent with the request, if 0 < rate < 60
    4. DEFAULT_FRAME_RATE

The winner is clamped to [MIN_FRAME_RATE, MAX_FRAME_RATE] and then used for
both the input and output rate of the frames -> video stage, so the video
plays back over the recorded duration.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import ValidationError

from stitcher.core.errors import AssetUnavailable, MetadataNotFound
from stitcher.schemas.job import StitchJob
from stitcher.schemas.metadata import RecordingStats
from stitcher.storage import BlobStore, paths
from stitcher.workers.fetcher import DEFAULT_RETRY_POLICY, RetryPolicy, fetch_asset

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 5.0
MIN_FRAME_RATE = 0.5
MAX_FRAME_RATE = 60.0

# Capture client records audio in 100ms chunks
AUDIO_CHUNKS_PER_SECOND = 10


@dataclass(frozen=True)
class ResolvedTiming:
    frame_rate: float
    source: str  # "metadata", "duration", "request" or "default"
    clamped: bool = False

    def expected_duration(self, frame_count: int) -> float:
        return frame_count / self.frame_rate


def _usable_rate(value: Optional[float]) -> bool:
    return value is not None and 0 < value < MAX_FRAME_RATE


def resolve_frame_rate(
    stats: RecordingStats, requested_frame_rate: Optional[float] = None
) -> ResolvedTiming:
    """Apply the priority list above, then clamp."""
    total_frames = stats.total_frames
    duration_seconds = stats.duration_seconds

    if _usable_rate(stats.actual_frame_rate):
        rate, source = stats.actual_frame_rate, "metadata"
    elif duration_seconds and duration_seconds > 0 and total_frames > 0:
        rate, source = total_frames / duration_seconds, "duration"
    elif _usable_rate(requested_frame_rate):
        rate, source = requested_frame_rate, "request"
    else:
        rate, source = DEFAULT_FRAME_RATE, "default"

    clamped = min(max(rate, MIN_FRAME_RATE), MAX_FRAME_RATE)
    return ResolvedTiming(frame_rate=float(clamped), source=source, clamped=clamped != rate)


def parse_recording_stats(raw: bytes) -> RecordingStats:
    """Parse final_stats.json bytes. Raises MetadataNotFound if unusable."""
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MetadataNotFound(f"Metadata is not valid JSON: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("recordingStats"), dict):
        raise MetadataNotFound("Metadata has no recordingStats section")

    try:
        return RecordingStats.model_validate(document)
    except ValidationError as e:
        raise MetadataNotFound(f"Metadata is malformed: {e}") from e


def load_recording_stats(
    storage: BlobStore, job: StitchJob, policy: RetryPolicy = DEFAULT_RETRY_POLICY
) -> RecordingStats:
    stats_path = paths.stats_path(job.session_id)
    logger.info(f"[{job.session_id}] Fetching metadata {stats_path}")
    try:
        raw = fetch_asset(storage, job.bucket, stats_path, policy)
    except AssetUnavailable as e:
        raise MetadataNotFound(f"No metadata found at {stats_path}") from e
    if not raw:
        raise MetadataNotFound(f"Metadata at {stats_path} is empty")
    return parse_recording_stats(raw)


def resolve_timing(
    storage: BlobStore, job: StitchJob, policy: RetryPolicy = DEFAULT_RETRY_POLICY
) -> Tuple[ResolvedTiming, RecordingStats]:
    """Load the session's stats and resolve the frame rate used for encoding."""
    sid = job.session_id
    stats = load_recording_stats(storage, job, policy)

    logger.info(
        f"[{sid}] Metadata: frames={stats.total_frames}, "
        f"audio_chunks={stats.total_audio_chunks}, "
        f"duration_ms={stats.recording.duration}, "
        f"duration_s={stats.recording.duration_seconds}, "
        f"target_fps={stats.target_frame_rate}, "
        f"actual_fps={stats.actual_frame_rate}, "
        f"request_fps={job.requested_frame_rate}"
    )

    timing = resolve_frame_rate(stats, job.requested_frame_rate)
    if timing.source == "default":
        logger.warning(
            f"[{sid}] Could not determine frame rate, using default {DEFAULT_FRAME_RATE} fps"
        )
    if timing.clamped:
        logger.warning(f"[{sid}] Frame rate out of range, clamped to {timing.frame_rate} fps")

    logger.info(
        f"[{sid}] Frame rate {timing.frame_rate:.4f} fps (from {timing.source}), "
        f"expected video duration {timing.expected_duration(stats.total_frames):.2f}s"
    )

    # Diagnostic only: the capture client should produce ~10 chunks per second
    if stats.duration_seconds and stats.total_audio_chunks:
        expected_chunks = int(stats.duration_seconds * AUDIO_CHUNKS_PER_SECOND)
        logger.debug(
            f"[{sid}] Expected ~{expected_chunks} audio chunks for "
            f"{stats.duration_seconds:.1f}s, metadata reports {stats.total_audio_chunks}"
        )

    return timing, stats
