"""
Job Worker - runs one stitching job from metadata to published video.

Jobs are started in the background by the API (POST /stitch) or from the
command line for manual re-runs:

Run with: python -m stitcher.workers.job_worker SESSION_ID --bucket BUCKET

Pipeline:
    1. Resolve frame rate from metadata/<session>/final_stats.json
    2. Download frames and renumber them gap-free
    3. Download audio chunks and write the concat manifest
    4. ffmpeg: frames -> video, chunks -> wav, video + wav -> final.mp4
    5. Upload final.mp4 and write completion.json (or error.json on failure)

The working directory is removed on every exit path.
"""

import argparse
import logging
import os
import re
import sys
import tempfile
from datetime import datetime, timezone
from typing import Optional, Union

from stitcher.core import config
from stitcher.schemas.job import StitchJob
from stitcher.schemas.result import CompletionRecord, FailureRecord
from stitcher.storage import BlobStore, get_storage
from stitcher.workers.audio import collect_audio
from stitcher.workers.ffmpeg_runner import FFmpegRunner, video_shape
from stitcher.workers.fetcher import DEFAULT_RETRY_POLICY, RetryPolicy
from stitcher.workers.frames import sequence_frames
from stitcher.workers.metadata import resolve_timing
from stitcher.workers.publisher import (
    cleanup_workdir,
    publish_artifact,
    write_completion,
    write_failure,
)

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

WORK_DIR_PREFIX = "composite_"


def run_pipeline(
    job: StitchJob,
    storage: BlobStore,
    runner: FFmpegRunner,
    work_dir: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> CompletionRecord:
    """Run every stage in order. Any exception ends the job."""
    sid = job.session_id

    timing, stats = resolve_timing(storage, job, policy)

    sequence = sequence_frames(storage, job, stats.total_frames, work_dir, policy)
    audio = collect_audio(storage, job, stats.total_audio_chunks, work_dir, policy)

    shape = video_shape(job.vertical_crop)
    logger.info(f"[{sid}] Creating {shape.resolution} video from {sequence.count} frames")
    video_path = runner.frames_to_video(
        sequence.pattern,
        timing.frame_rate,
        shape,
        os.path.join(work_dir, "video_only.mp4"),
    )

    final_path = video_path
    if audio.manifest_path:
        logger.info(f"[{sid}] Combining {audio.downloaded} audio chunks")
        audio_path = runner.concat_audio(
            audio.manifest_path,
            job.audio_sample_rate,
            os.path.join(work_dir, "audio.wav"),
        )
        logger.info(f"[{sid}] Merging video and audio")
        final_path = runner.merge(
            video_path,
            audio_path,
            job.audio_sample_rate,
            os.path.join(work_dir, "final.mp4"),
        )
    else:
        logger.info(f"[{sid}] No audio, publishing silent video")

    output_path = publish_artifact(storage, job, final_path)
    return write_completion(storage, job, output_path, shape)


def process_stitch_job(
    job: StitchJob,
    storage: Optional[BlobStore] = None,
    runner: Optional[FFmpegRunner] = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    work_root: Optional[str] = None,
) -> Union[CompletionRecord, FailureRecord]:
    """
    Process one job end to end.

    Never raises: failures are reported through error.json and returned as a
    FailureRecord, since the request was acknowledged before work started.
    """
    sid = job.session_id
    logger.info(
        f"[{sid}] Starting job (bucket={job.bucket}, vertical_crop={job.vertical_crop}, "
        f"has_audio={job.has_audio})"
    )

    owns_storage = storage is None
    if owns_storage:
        try:
            storage = get_storage()
        except Exception as e:
            logger.error(f"[{sid}] Storage unavailable, cannot report outcome: {e}")
            return FailureRecord(
                session_id=sid, error=str(e), failed_at=datetime.now(timezone.utc)
            )
    runner = runner or FFmpegRunner()

    work_dir = None
    try:
        root = work_root or config.WORK_ROOT
        os.makedirs(root, exist_ok=True)
        work_dir = tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=root)

        record = run_pipeline(job, storage, runner, work_dir, policy)
        logger.info(f"[{sid}] Session completed successfully")
        return record

    except Exception as e:
        logger.error(f"[{sid}] Stitching failed: {e}", exc_info=True)
        return write_failure(storage, job, e)

    finally:
        if work_dir:
            cleanup_workdir(work_dir)
        if owns_storage:
            storage.close()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stitch one recording session into a video")
    parser.add_argument("session_id", help="Recording session id")
    parser.add_argument("--bucket", required=True, help="Storage bucket")
    parser.add_argument("--video-folder", default=config.DEFAULT_VIDEO_FOLDER)
    parser.add_argument("--audio-folder", default=config.DEFAULT_AUDIO_FOLDER)
    parser.add_argument("--output-folder", default=config.DEFAULT_OUTPUT_FOLDER)
    parser.add_argument("--frame-rate", type=float, default=None, help="Advisory frame rate")
    parser.add_argument("--sample-rate", type=int, default=None)
    parser.add_argument("--vertical-crop", action="store_true", help="Crop to 9:16 portrait")
    parser.add_argument("--no-audio", action="store_true", help="Ignore audio chunks")
    args = parser.parse_args(argv)
    if not re.fullmatch(r"[A-Za-z0-9._-]+", args.session_id) or set(args.session_id) == {"."}:
        parser.error(f"invalid session id: {args.session_id!r}")
    return args


def main(argv=None):
    args = parse_args(argv)
    job = StitchJob(
        session_id=args.session_id,
        bucket=args.bucket,
        video_folder=args.video_folder,
        audio_folder=args.audio_folder,
        output_folder=args.output_folder,
        vertical_crop=args.vertical_crop,
        has_audio=not args.no_audio,
        sample_rate=args.sample_rate,
        requested_frame_rate=args.frame_rate,
    )

    logger.info("=" * 60)
    logger.info("Stitch Worker")
    logger.info("=" * 60)
    logger.info("Configuration:")
    logger.info(f"  STORAGE_BACKEND: {config.STORAGE_BACKEND}")
    logger.info(f"  WORK_ROOT: {config.WORK_ROOT}")
    logger.info(f"  FFMPEG_BINARY: {config.FFMPEG_BINARY}")
    logger.info(f"  FFMPEG_THREADS: {config.FFMPEG_THREADS}")
    logger.info("=" * 60)

    result = process_stitch_job(job)
    if isinstance(result, FailureRecord):
        logger.error(f"Job {job.session_id} failed: {result.error}")
        sys.exit(1)
    logger.info(f"Job {job.session_id} done: {result.public_url}")


if __name__ == "__main__":
    main()
