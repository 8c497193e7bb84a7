# Stitching pipeline stages

from stitcher.workers.ffmpeg_runner import FFmpegRunner, VideoShape, video_shape
from stitcher.workers.fetcher import RetryPolicy, fetch_asset
from stitcher.workers.job_worker import process_stitch_job, run_pipeline

__all__ = [
    "FFmpegRunner",
    "VideoShape",
    "video_shape",
    "RetryPolicy",
    "fetch_asset",
    "process_stitch_job",
    "run_pipeline",
]
