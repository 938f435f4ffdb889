"""Read-side views of jobs, scenes and outputs."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _View(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class OutputView(_View):
    id: uuid.UUID
    scene_id: uuid.UUID
    media_type: str
    url: str
    duration_seconds: Optional[int] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="metadata_json")


class SceneView(_View):
    id: uuid.UUID
    order_index: int
    scene_type: Optional[str] = None
    script: Optional[str] = None
    action: Optional[str] = None
    setting: Optional[str] = None
    duration: int
    status: str
    error_message: Optional[str] = None


class JobSummary(_View):
    id: uuid.UUID
    mode: str
    status: str
    title: Optional[str] = None
    provider_tier: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobDetail(JobSummary):
    config: Optional[dict[str, Any]] = None
    scenes: list[SceneView] = Field(default_factory=list)
    outputs: list[OutputView] = Field(default_factory=list)
