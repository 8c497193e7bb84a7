"""
Asset Fetcher - single blob download with bounded retry.

Every download in the pipeline (stats document, frames, audio chunks) goes
through fetch_asset so they all share one retry policy.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from stitcher.core import config
from stitcher.core.errors import AssetUnavailable, StitchError
from stitcher.storage import BlobStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: wait ``attempt * unit_delay`` seconds after a failed attempt."""

    max_attempts: int = config.DOWNLOAD_MAX_ATTEMPTS
    unit_delay: float = config.DOWNLOAD_RETRY_DELAY

    def backoff(self, attempt: int) -> float:
        return attempt * self.unit_delay


DEFAULT_RETRY_POLICY = RetryPolicy()


def fetch_asset(
    storage: BlobStore,
    bucket: str,
    path: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """
    Download one blob, retrying transient failures.

    Args:
        storage: Blob store to read from
        bucket: Bucket / container name
        path: Blob path inside the bucket
        policy: Attempt bound and backoff
        sleep: Injected for tests

    Returns:
        Raw blob bytes (possibly empty - callers decide what empty means)

    Raises:
        AssetUnavailable: every attempt failed; chained to the last error
    """
    attempts = max(1, policy.max_attempts)
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            return storage.download(bucket, path)
        except StitchError as e:
            last_error = e
            if attempt == attempts:
                break
            delay = policy.backoff(attempt)
            logger.warning(
                f"[RETRY] Download attempt {attempt}/{attempts} for {path} failed ({e}), "
                f"retrying in {delay:.1f}s"
            )
            sleep(delay)

    raise AssetUnavailable(path, str(last_error)) from last_error
