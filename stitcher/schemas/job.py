"""
Job request/response schemas and the in-process job description.
"""
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from stitcher.core import config


@dataclass(frozen=True)
class StitchJob:
    """One stitching job, built from an accepted request."""

    session_id: str
    bucket: str
    video_folder: str = config.DEFAULT_VIDEO_FOLDER
    audio_folder: str = config.DEFAULT_AUDIO_FOLDER
    output_folder: str = config.DEFAULT_OUTPUT_FOLDER
    vertical_crop: bool = False
    has_audio: bool = True
    sample_rate: Optional[int] = None
    requested_frame_rate: Optional[float] = None  # advisory only

    @property
    def audio_sample_rate(self) -> int:
        return self.sample_rate or config.DEFAULT_SAMPLE_RATE


class StitchRequest(BaseModel):
    """Body of POST /stitch, as sent by the recording client (camelCase)."""
    session_id: str = Field(alias="sessionId", min_length=1, pattern=r"^[A-Za-z0-9._-]+$")
    bucket: str = Field(min_length=1)
    frame_rate: Optional[float] = Field(default=None, alias="frameRate")
    sample_rate: Optional[int] = Field(default=None, alias="sampleRate", gt=0)
    video_storage_folder: Optional[str] = Field(default=None, alias="videoStorageFolder")
    audio_storage_folder: Optional[str] = Field(default=None, alias="audioStorageFolder")
    stitched_output_folder: Optional[str] = Field(default=None, alias="stitchedOutputFolder")
    use_vertical_crop: Optional[bool] = Field(default=None, alias="useVerticalCrop")
    has_audio: Optional[bool] = Field(default=None, alias="hasAudio")  # true unless explicitly false

    class Config:
        populate_by_name = True

    @field_validator("session_id")
    @classmethod
    def session_id_is_not_dots(cls, value: str) -> str:
        # "." and ".." would resolve to a parent folder inside blob paths
        if set(value) == {"."}:
            raise ValueError("sessionId cannot consist only of dots")
        return value

    def to_job(self) -> StitchJob:
        return StitchJob(
            session_id=self.session_id,
            bucket=self.bucket,
            video_folder=self.video_storage_folder or config.DEFAULT_VIDEO_FOLDER,
            audio_folder=self.audio_storage_folder or config.DEFAULT_AUDIO_FOLDER,
            output_folder=self.stitched_output_folder or config.DEFAULT_OUTPUT_FOLDER,
            vertical_crop=self.use_vertical_crop is True,
            has_audio=self.has_audio is not False,
            sample_rate=self.sample_rate,
            requested_frame_rate=self.frame_rate,
        )


class StitchAccepted(BaseModel):
    """Immediate acknowledgment; the outcome is published to the metadata store."""
    success: bool = True
    status: str = "processing"
    session_id: str = Field(alias="sessionId")
    message: str = "Stitching job started"

    class Config:
        populate_by_name = True
