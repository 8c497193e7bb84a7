"""
Terminal status documents. Exactly one of these is stored per session.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class VideoFormat(BaseModel):
    vertical_crop: bool = Field(alias="verticalCrop")
    optimized: bool = True
    resolution: str  # "1280x720" or "720x1280"

    class Config:
        populate_by_name = True


class CompletionRecord(BaseModel):
    session_id: str = Field(alias="sessionId")
    status: Literal["completed"] = "completed"
    completed_at: datetime = Field(alias="completedAt")
    output_path: str = Field(alias="outputPath")
    public_url: str = Field(alias="publicUrl")
    video_format: VideoFormat = Field(alias="videoFormat")

    class Config:
        populate_by_name = True

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class FailureRecord(BaseModel):
    session_id: str = Field(alias="sessionId")
    status: Literal["failed"] = "failed"
    error: str
    failed_at: datetime = Field(alias="failedAt")

    class Config:
        populate_by_name = True

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
