"""Local video and remote analysis-job models.

``VideoFile`` is produced by the validator; the rest mirror the JSON bodies of
the ClipSense API. Unknown fields returned by the server are ignored.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoFile(BaseModel):
    """A local video that passed validation."""

    path: Path
    filename: str
    size_bytes: int = Field(gt=0)
    extension: str = Field(description="Lower-case extension without the dot")
    content_type: str

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


class UploadTarget(BaseModel):
    """One-time upload destination returned by ``POST /upload/presign``."""

    upload_url: str = Field(min_length=1)
    video_key: str = Field(min_length=1)


class JobStatus(str, Enum):
    """Server-side job states the client knows about."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatusResponse(BaseModel):
    """Body of ``GET /analyze/jobs/{id}/status``.

    ``status`` stays a plain string: states other than ``completed`` and
    ``failed`` are all treated as still running.
    """

    status: str
    error_message: str | None = None


class StartJobResponse(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(min_length=1)


class AnalysisResult(BaseModel):
    response: str | None = None


class AnalysisJob(BaseModel):
    """Full job detail from ``GET /analyze/jobs/{id}``."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = ""
    status: str = ""
    error_message: str | None = None
    frames_extracted: int | float | str | None = None
    tokens_used: int | float | str | None = None
    cost_total: float | None = None
    result: AnalysisResult | None = None

    @field_validator("frames_extracted", "tokens_used", mode="before")
    @classmethod
    def drop_unusable_count(cls, value: object) -> object:
        """Metrics are display-only: keep scalars as sent, drop anything else."""
        if isinstance(value, (int, float, str)):
            return value
        return None

    @field_validator("cost_total", mode="before")
    @classmethod
    def drop_unusable_cost(cls, value: object) -> float | None:
        if isinstance(value, bool):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
