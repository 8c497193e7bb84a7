"""
Audio Collector - downloads audio chunks and writes the concat manifest.

Missing chunks are left out of the manifest rather than padded with silence,
so the concatenated track keeps ascending chunk order with gaps closed up.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from stitcher.core.errors import AssetUnavailable
from stitcher.schemas.job import StitchJob
from stitcher.storage import BlobStore, paths
from stitcher.workers.fetcher import DEFAULT_RETRY_POLICY, RetryPolicy, fetch_asset

logger = logging.getLogger(__name__)

MANIFEST_NAME = "audio_list.txt"
MISSING_PREVIEW = 20


@dataclass
class AudioCollection:
    directory: str
    declared: int
    chunks: List[str] = field(default_factory=list)  # ascending original index
    missing: List[int] = field(default_factory=list)
    manifest_path: Optional[str] = None

    @property
    def downloaded(self) -> int:
        return len(self.chunks)


def _concat_entry(path: str) -> str:
    # concat demuxer quoting: ' becomes '\''
    escaped = os.path.abspath(path).replace("'", "'\\''")
    return f"file '{escaped}'"


def write_concat_manifest(chunk_paths: List[str], manifest_path: str) -> str:
    """Write an ffmpeg concat list for ``chunk_paths`` in the given order."""
    with open(manifest_path, "w", encoding="utf-8") as f:
        f.write("\n".join(_concat_entry(p) for p in chunk_paths))
        f.write("\n")
    return manifest_path


def download_audio_chunks(
    storage: BlobStore,
    job: StitchJob,
    total_chunks: int,
    audio_dir: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> AudioCollection:
    sid = job.session_id
    os.makedirs(audio_dir, exist_ok=True)
    collection = AudioCollection(directory=audio_dir, declared=total_chunks)

    logger.info(f"[{sid}] Downloading {total_chunks} audio chunks")
    for index in range(1, total_chunks + 1):
        remote = paths.audio_chunk_path(job.audio_folder, sid, index)
        try:
            data = fetch_asset(storage, job.bucket, remote, policy)
        except AssetUnavailable as e:
            logger.error(f"[{sid}] Audio chunk {index}: {e}")
            collection.missing.append(index)
            continue

        if not data:
            logger.warning(f"[{sid}] Audio chunk {index} is empty")
            collection.missing.append(index)
            continue

        local = os.path.join(audio_dir, paths.audio_chunk_name(index))
        with open(local, "wb") as f:
            f.write(data)
        collection.chunks.append(local)

    logger.info(f"[{sid}] Downloaded {collection.downloaded}/{total_chunks} audio chunks")
    if collection.missing:
        preview = ", ".join(str(i) for i in collection.missing[:MISSING_PREVIEW])
        more = "..." if len(collection.missing) > MISSING_PREVIEW else ""
        logger.warning(f"[{sid}] Missing audio chunks: {preview}{more}")
        logger.warning(
            f"[{sid}] Total missing: {len(collection.missing)} chunks - audio will have gaps"
        )
    return collection


def collect_audio(
    storage: BlobStore,
    job: StitchJob,
    total_chunks: int,
    work_dir: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> AudioCollection:
    """
    Download the session's audio and build the concat manifest.

    Returns an empty collection (downloaded == 0, no manifest) when the job has
    no audio, none is declared, or none could be fetched.
    """
    audio_dir = os.path.join(work_dir, "audio")
    if not job.has_audio or total_chunks <= 0:
        logger.info(f"[{job.session_id}] No audio to collect")
        return AudioCollection(directory=audio_dir, declared=max(total_chunks, 0))

    collection = download_audio_chunks(storage, job, total_chunks, audio_dir, policy)
    if collection.chunks:
        collection.manifest_path = write_concat_manifest(
            collection.chunks, os.path.join(audio_dir, MANIFEST_NAME)
        )
    return collection
