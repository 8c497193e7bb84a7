"""
FFmpeg Runner - the three transcode stages of a stitching job.

    A. frames_to_video: gap-free JPEG sequence -> silent H.264 MP4
    B. concat_audio:    concat manifest of WAV chunks -> mono PCM WAV
    C. merge:           silent video + WAV -> final MP4 (video copied, AAC audio)

ffmpeg is run as a subprocess. Encoder settings favour speed and a small
memory footprint so several jobs can share a small machine.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import List

from stitcher.core import config
from stitcher.core.errors import TranscodeFailed

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 10


@dataclass(frozen=True)
class VideoShape:
    vertical_crop: bool
    width: int
    height: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


VERTICAL_SHAPE = VideoShape(vertical_crop=True, width=720, height=1280)
LANDSCAPE_SHAPE = VideoShape(vertical_crop=False, width=1280, height=720)


def video_shape(vertical_crop: bool) -> VideoShape:
    return VERTICAL_SHAPE if vertical_crop else LANDSCAPE_SHAPE


def build_video_filters(shape: VideoShape) -> List[str]:
    """
    Geometry filter chain for stage A.

    Vertical: centre crop to 9:16, then scale to the portrait size.
    Landscape: fit inside the landscape size keeping aspect ratio.
    Both end with a pad to even dimensions, which yuv420p requires.
    """
    if shape.vertical_crop:
        filters = [
            "crop=ih*9/16:ih:(iw-ih*9/16)/2:0",
            f"scale={shape.width}:{shape.height}",
        ]
    else:
        filters = [
            f"scale={shape.width}:{shape.height}:force_original_aspect_ratio=decrease",
        ]
    filters.append("pad=ceil(iw/2)*2:ceil(ih/2)*2")
    return filters


def format_rate(value: float) -> str:
    return f"{value:.10g}"


class FFmpegRunner:
    """
    Builds and runs the ffmpeg command for each stage.

    Each stage raises TranscodeFailed if ffmpeg exits non-zero or leaves no
    output file behind.
    """

    def __init__(
        self,
        binary: str = None,
        threads: int = None,
        preset: str = "ultrafast",
        crf: int = 28,
        audio_bitrate: str = "96k",
    ):
        """
        Args:
            binary: ffmpeg executable (default: FFMPEG_BINARY)
            threads: Encoder thread limit (default: FFMPEG_THREADS)
            preset: x264 preset
            crf: x264 constant rate factor
            audio_bitrate: AAC bitrate for the merged output
        """
        self.binary = binary or config.FFMPEG_BINARY
        self.threads = threads or config.FFMPEG_THREADS
        self.preset = preset
        self.crf = crf
        self.audio_bitrate = audio_bitrate

    def frames_to_video_command(
        self, pattern: str, frame_rate: float, shape: VideoShape, output_path: str
    ) -> List[str]:
        rate = format_rate(frame_rate)
        return [
            self.binary,
            "-y",
            "-framerate",
            rate,
            "-start_number",
            "1",
            "-i",
            pattern,
            "-c:v",
            "libx264",
            "-vf",
            ",".join(build_video_filters(shape)),
            "-r",
            rate,  # output rate must equal input rate to keep the recorded duration
            "-pix_fmt",
            "yuv420p",
            "-preset",
            self.preset,
            "-crf",
            str(self.crf),
            "-tune",
            "fastdecode",
            "-threads",
            str(self.threads),
            "-movflags",
            "+faststart",
            output_path,
        ]

    def concat_audio_command(
        self, manifest_path: str, sample_rate: int, output_path: str
    ) -> List[str]:
        return [
            self.binary,
            "-y",
            "-f",
            "concat",
            "-safe",
            "0",
            "-i",
            manifest_path,
            "-c:a",
            "pcm_s16le",
            "-ar",
            str(sample_rate),
            "-ac",
            "1",
            output_path,
        ]

    def merge_command(
        self, video_path: str, audio_path: str, sample_rate: int, output_path: str
    ) -> List[str]:
        return [
            self.binary,
            "-y",
            "-i",
            video_path,
            "-i",
            audio_path,
            "-map",
            "0:v:0",
            "-map",
            "1:a:0",
            "-c:v",
            "copy",
            "-c:a",
            "aac",
            "-ar",
            str(sample_rate),
            "-b:a",
            self.audio_bitrate,
            "-ac",
            "1",
            "-shortest",
            "-movflags",
            "+faststart",
            output_path,
        ]

    def _run(self, stage: str, cmd: List[str], output_path: str) -> str:
        logger.info(f"[FFMPEG] {stage} command: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise TranscodeFailed(stage, f"could not start {self.binary}: {e}") from e

        if result.returncode != 0:
            tail = "\n".join((result.stderr or "").strip().splitlines()[-STDERR_TAIL_LINES:])
            logger.error(f"[FFMPEG] {stage} stderr: {result.stderr}")
            raise TranscodeFailed(stage, f"exit code {result.returncode}: {tail}")

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            raise TranscodeFailed(stage, f"no output written to {output_path}")

        logger.info(f"[FFMPEG] {stage} complete: {output_path}")
        return output_path

    def frames_to_video(
        self, pattern: str, frame_rate: float, shape: VideoShape, output_path: str
    ) -> str:
        """Stage A. Returns the silent video path."""
        cmd = self.frames_to_video_command(pattern, frame_rate, shape, output_path)
        return self._run("video", cmd, output_path)

    def concat_audio(self, manifest_path: str, sample_rate: int, output_path: str) -> str:
        """Stage B. Returns the concatenated WAV path."""
        if not os.path.exists(manifest_path) or os.path.getsize(manifest_path) == 0:
            raise TranscodeFailed("audio", f"concat manifest missing or empty: {manifest_path}")
        cmd = self.concat_audio_command(manifest_path, sample_rate, output_path)
        return self._run("audio", cmd, output_path)

    def merge(
        self, video_path: str, audio_path: str, sample_rate: int, output_path: str
    ) -> str:
        """Stage C. Returns the final MP4 path."""
        for required in (video_path, audio_path):
            if not os.path.exists(required):
                raise TranscodeFailed("merge", f"input missing: {required}")
        cmd = self.merge_command(video_path, audio_path, sample_rate, output_path)
        return self._run("merge", cmd, output_path)
