"""
Publisher - uploads the final video and writes the session's terminal document.

completion.json and error.json are mutually exclusive: writing one removes a
leftover copy of the other from an earlier run of the same session.
"""

import logging
import shutil
from datetime import datetime, timezone

from stitcher.core.errors import PublishFailed, StitchError
from stitcher.schemas.job import StitchJob
from stitcher.schemas.result import CompletionRecord, FailureRecord, VideoFormat
from stitcher.storage import BlobStore, paths
from stitcher.workers.ffmpeg_runner import VideoShape

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"
JSON_CONTENT_TYPE = "application/json"


def _remove_stale(storage: BlobStore, job: StitchJob, path: str):
    try:
        storage.remove(job.bucket, [path])
    except (StitchError, OSError) as e:
        logger.warning(f"[{job.session_id}] Could not remove stale {path}: {e}")


def publish_artifact(storage: BlobStore, job: StitchJob, artifact_path: str) -> str:
    """Upload the final video. Returns its remote path."""
    sid = job.session_id
    remote = paths.output_path(job.output_folder, sid)

    with open(artifact_path, "rb") as f:
        data = f.read()
    logger.info(f"[{sid}] Uploading {len(data) / 1024 / 1024:.2f} MB to {remote}")

    try:
        storage.upload(job.bucket, remote, data, content_type=VIDEO_CONTENT_TYPE, upsert=True)
    except StitchError as e:
        raise PublishFailed(f"Upload of {remote} failed: {e}") from e
    return remote


def write_completion(
    storage: BlobStore, job: StitchJob, output_path: str, shape: VideoShape
) -> CompletionRecord:
    sid = job.session_id
    record = CompletionRecord(
        session_id=sid,
        completed_at=datetime.now(timezone.utc),
        output_path=output_path,
        public_url=storage.public_url(job.bucket, output_path),
        video_format=VideoFormat(
            vertical_crop=shape.vertical_crop,
            optimized=True,
            resolution=shape.resolution,
        ),
    )
    try:
        storage.upload(
            job.bucket,
            paths.completion_path(sid),
            record.to_json().encode("utf-8"),
            content_type=JSON_CONTENT_TYPE,
            upsert=True,
        )
    except StitchError as e:
        raise PublishFailed(f"Could not write completion document: {e}") from e

    _remove_stale(storage, job, paths.error_path(sid))
    logger.info(f"[{sid}] Video published: {record.public_url}")
    return record


def write_failure(storage: BlobStore, job: StitchJob, error: BaseException) -> FailureRecord:
    """
    Best-effort failure document. Never raises: the original error is
    already what gets reported.
    """
    sid = job.session_id
    record = FailureRecord(
        session_id=sid,
        error=str(error) or type(error).__name__,
        failed_at=datetime.now(timezone.utc),
    )
    try:
        storage.upload(
            job.bucket,
            paths.error_path(sid),
            record.to_json().encode("utf-8"),
            content_type=JSON_CONTENT_TYPE,
            upsert=True,
        )
    except Exception as meta_error:
        logger.error(f"[{sid}] Could not write failure document: {meta_error}")
        return record

    _remove_stale(storage, job, paths.completion_path(sid))
    return record


def cleanup_workdir(work_dir: str):
    """Remove the job's working directory; errors are ignored."""
    try:
        shutil.rmtree(work_dir)
    except OSError as e:
        logger.debug(f"Cleanup of {work_dir} failed: {e}")
