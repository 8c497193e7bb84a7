"""
Frame Sequencer - downloads a session's frames and renumbers them gap-free.

ffmpeg's image2 demuxer stops reading at the first missing number in a
pattern like seq_%05d.jpg, so a single lost frame would truncate the video.
Frames are therefore downloaded under their original index and then moved
into a separate directory as seq_00001.jpg .. seq_N.jpg.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List

from stitcher.core.errors import AssetUnavailable, NoFramesRecovered
from stitcher.schemas.job import StitchJob
from stitcher.storage import BlobStore, paths
from stitcher.workers.fetcher import DEFAULT_RETRY_POLICY, RetryPolicy, fetch_asset

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 25
SEQUENCE_PREFIX = "seq_"
SEQUENCE_WIDTH = 5
FRAME_EXTENSION = ".jpg"

_FRAME_FILE = re.compile(r"^frame_(\d+)\.jpg$")


@dataclass
class FrameDownload:
    directory: str
    declared: int
    downloaded: int = 0
    missing: List[int] = field(default_factory=list)


@dataclass
class FrameSequence:
    """Gap-free frame set: ``directory`` holds exactly seq 1..count."""

    directory: str
    count: int
    declared: int
    width: int = SEQUENCE_WIDTH
    missing: List[int] = field(default_factory=list)

    @property
    def pattern(self) -> str:
        """ffmpeg input pattern, e.g. /work/sequence/seq_%05d.jpg"""
        return os.path.join(
            self.directory, f"{SEQUENCE_PREFIX}%0{self.width}d{FRAME_EXTENSION}"
        )

    def frame_file(self, number: int) -> str:
        return os.path.join(
            self.directory, f"{SEQUENCE_PREFIX}{number:0{self.width}d}{FRAME_EXTENSION}"
        )


def download_frames(
    storage: BlobStore,
    job: StitchJob,
    total_frames: int,
    frames_dir: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> FrameDownload:
    """
    Fetch frames 1..total_frames one at a time.

    A frame that cannot be fetched, or comes back empty, is skipped and
    recorded as missing.
    """
    sid = job.session_id
    os.makedirs(frames_dir, exist_ok=True)
    result = FrameDownload(directory=frames_dir, declared=total_frames)

    logger.info(f"[{sid}] Downloading {total_frames} frames")
    for index in range(1, total_frames + 1):
        remote = paths.frame_path(job.video_folder, sid, index)
        try:
            data = fetch_asset(storage, job.bucket, remote, policy)
        except AssetUnavailable as e:
            logger.error(f"[{sid}] Frame {index}: {e}")
            data = b""

        if data:
            with open(os.path.join(frames_dir, paths.frame_name(index)), "wb") as f:
                f.write(data)
            result.downloaded += 1
        else:
            result.missing.append(index)

        if index % PROGRESS_EVERY == 0:
            logger.info(f"[{sid}] Frames: {index}/{total_frames}")

    logger.info(f"[{sid}] Downloaded {result.downloaded}/{total_frames} frames")
    return result


def renumber_frames(frames_dir: str, sequence_dir: str, declared: int = 0) -> FrameSequence:
    """
    Move downloaded frames into ``sequence_dir`` as seq 1..N.

    Frames are ordered by their numeric original index, not by file name.
    """
    indexed = []
    for name in os.listdir(frames_dir):
        match = _FRAME_FILE.match(name)
        if match:
            indexed.append((int(match.group(1)), name))
    indexed.sort()

    count = len(indexed)
    sequence = FrameSequence(
        directory=sequence_dir,
        count=count,
        declared=declared,
        width=max(SEQUENCE_WIDTH, len(str(count))),
    )
    os.makedirs(sequence_dir, exist_ok=True)

    present = set()
    for number, (original, name) in enumerate(indexed, start=1):
        os.replace(os.path.join(frames_dir, name), sequence.frame_file(number))
        present.add(original)

    if declared:
        sequence.missing = [i for i in range(1, declared + 1) if i not in present]
    return sequence


def sequence_frames(
    storage: BlobStore,
    job: StitchJob,
    total_frames: int,
    work_dir: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> FrameSequence:
    """Download all frames and produce the gap-free sequence for encoding."""
    sid = job.session_id
    frames_dir = os.path.join(work_dir, "frames")
    sequence_dir = os.path.join(work_dir, "sequence")

    download = download_frames(storage, job, total_frames, frames_dir, policy)
    if download.downloaded == 0:
        raise NoFramesRecovered(f"No valid frames downloaded (declared {total_frames})")

    sequence = renumber_frames(frames_dir, sequence_dir, declared=total_frames)
    logger.info(
        f"[{sid}] Renumbered {sequence.count} frames "
        f"({os.path.basename(sequence.frame_file(1))} to "
        f"{os.path.basename(sequence.frame_file(sequence.count))})"
    )
    if sequence.count != total_frames:
        # Rate stays as resolved: fewer frames means a proportionally shorter video
        logger.warning(
            f"[{sid}] Frame count mismatch: expected {total_frames}, got {sequence.count}"
        )
    return sequence
