"""Result objects returned by the orchestrator entry points."""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ugcpipe.errors import ErrorKind, GenerationError


class _ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SceneOutput(_ResultModel):
    scene_index: int
    url: str


class VideoGenerationResult(_ResultModel):
    """Outcome of a multi-scene (avatar or product) video request."""

    success: bool
    job_id: Optional[uuid.UUID] = None
    outputs: list[SceneOutput] = Field(default_factory=list)
    concat_script: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def denied(cls, exc: GenerationError, job_id: Optional[uuid.UUID] = None) -> "VideoGenerationResult":
        return cls(
            success=False,
            job_id=job_id,
            error=exc.message,
            error_kind=exc.kind,
            details=exc.details,
        )


class PhotoGenerationResult(_ResultModel):
    """Outcome of a single-image photo request."""

    success: bool
    job_id: Optional[uuid.UUID] = None
    output_url: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def denied(cls, exc: GenerationError, job_id: Optional[uuid.UUID] = None) -> "PhotoGenerationResult":
        return cls(
            success=False,
            job_id=job_id,
            error=exc.message,
            error_kind=exc.kind,
            details=exc.details,
        )
