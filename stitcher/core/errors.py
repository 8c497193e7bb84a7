"""
Error taxonomy for stitching jobs.

Only AssetUnavailable is tolerated per item; every other error ends the job
and is reported through the failure document.
"""

from typing import Optional


class StitchError(Exception):
    """Base class for all stitching errors."""


class StorageError(StitchError):
    """Blob store transport or HTTP failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MetadataNotFound(StitchError):
    """The session's final_stats.json is missing or unusable."""


class AssetUnavailable(StitchError):
    """A single blob could not be fetched after all retries."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class NoFramesRecovered(StitchError):
    """Not a single frame could be downloaded."""


class TranscodeFailed(StitchError):
    """An ffmpeg stage exited with an error or produced no output."""

    def __init__(self, stage: str, detail: str):
        super().__init__(f"ffmpeg {stage} failed: {detail}")
        self.stage = stage
        self.detail = detail


class PublishFailed(StitchError):
    """The artifact or completion document could not be uploaded."""
