"""
Recording statistics uploaded by the capture client as final_stats.json.

Example document:
    {
      "recordingStats": {
        "totalFrames": 300,
        "totalAudioChunks": 200,
        "duration": 20000,          # milliseconds
        "durationSeconds": 20.0
      },
      "stitchingInfo": {
        "targetFrameRate": 15,
        "actualFrameRate": 14.98
      }
    }
"""
from typing import Optional

from pydantic import BaseModel, Field


class RecordingSection(BaseModel):
    total_frames: Optional[int] = Field(default=None, alias="totalFrames", ge=0)
    total_audio_chunks: Optional[int] = Field(default=None, alias="totalAudioChunks", ge=0)
    duration: Optional[float] = None  # milliseconds
    duration_seconds: Optional[float] = Field(default=None, alias="durationSeconds")

    class Config:
        populate_by_name = True
        frozen = True


class StitchingInfo(BaseModel):
    target_frame_rate: Optional[float] = Field(default=None, alias="targetFrameRate")
    actual_frame_rate: Optional[float] = Field(default=None, alias="actualFrameRate")

    class Config:
        populate_by_name = True
        frozen = True


class RecordingStats(BaseModel):
    """Declared counts and timing for a session. Source of truth for counts."""
    recording: RecordingSection = Field(alias="recordingStats")
    stitching: Optional[StitchingInfo] = Field(default=None, alias="stitchingInfo")

    class Config:
        populate_by_name = True
        frozen = True

    @property
    def total_frames(self) -> int:
        return self.recording.total_frames or 0

    @property
    def total_audio_chunks(self) -> int:
        return self.recording.total_audio_chunks or 0

    @property
    def duration_seconds(self) -> Optional[float]:
        """Explicit seconds field, falling back to the millisecond duration."""
        if self.recording.duration_seconds:
            return self.recording.duration_seconds
        if self.recording.duration is not None:
            return self.recording.duration / 1000
        return None

    @property
    def actual_frame_rate(self) -> Optional[float]:
        return self.stitching.actual_frame_rate if self.stitching else None

    @property
    def target_frame_rate(self) -> Optional[float]:
        return self.stitching.target_frame_rate if self.stitching else None
