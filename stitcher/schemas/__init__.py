from stitcher.schemas.job import StitchAccepted, StitchJob, StitchRequest
from stitcher.schemas.metadata import RecordingStats
from stitcher.schemas.result import CompletionRecord, FailureRecord, VideoFormat

__all__ = [
    "StitchJob",
    "StitchRequest",
    "StitchAccepted",
    "RecordingStats",
    "CompletionRecord",
    "FailureRecord",
    "VideoFormat",
]
