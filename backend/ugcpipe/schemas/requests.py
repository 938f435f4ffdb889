"""Pydantic schemas for generation requests (one shape per mode).

Field names follow the wire format (camelCase) via an alias generator;
Python code uses the snake_case attribute names.
"""

import uuid
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from ugcpipe.config import settings
from ugcpipe.errors import ErrorKind, GenerationError

AspectRatio = Literal["16:9", "9:16", "1:1"]
SceneDuration = Literal[5, 6, 8]
SceneType = Literal["hook", "demo", "cta", "custom"]
ProductAction = Literal["hold", "point", "use", "unbox", "demo"]
PhotoStyle = Literal["casual", "professional", "lifestyle", "selfie"]


class GenerationMode(str, Enum):
    AVATAR_VIDEO = "MODE_A"
    PHOTO = "MODE_B"
    PRODUCT_VIDEO = "MODE_C"

    @property
    def is_video(self) -> bool:
        return self is not GenerationMode.PHOTO


class ProviderTier(str, Enum):
    """Video provider selection; priced differently by the credit ledger."""

    DEFAULT = "default"
    PREMIUM_STANDARD = "premium-standard"
    PREMIUM_PRO = "premium-pro"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class AvatarScene(_WireModel):
    """One talking-avatar scene."""

    type: SceneType
    script: str = Field(min_length=1)
    action: Optional[str] = None
    setting: Optional[str] = None
    duration: SceneDuration


class ProductScene(_WireModel):
    """One product-demo scene."""

    action: ProductAction
    script: Optional[str] = None
    duration: SceneDuration
    setting: Optional[str] = None


class _CommonRequest(_WireModel):
    title: Optional[str] = None
    aspect_ratio: AspectRatio = "9:16"
    audio_enabled: bool = True
    provider_tier: ProviderTier = ProviderTier.DEFAULT


def _within_scene_limit(scenes: list) -> list:
    limit = settings.pipeline.max_scenes
    if len(scenes) > limit:
        raise ValueError(f"At most {limit} scenes are allowed (got {len(scenes)})")
    return scenes


class AvatarVideoRequest(_CommonRequest):
    """Mode A: talking-avatar video, one or more scripted scenes."""

    mode: Literal[GenerationMode.AVATAR_VIDEO] = GenerationMode.AVATAR_VIDEO
    avatar_id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    reference_image_id: Optional[uuid.UUID] = None
    scenes: list[AvatarScene] = Field(min_length=1)

    @field_validator("scenes")
    @classmethod
    def _scene_limit(cls, v):
        return _within_scene_limit(v)


class PhotoRequest(_CommonRequest):
    """Mode B: single influencer photo from an avatar or reference image."""

    mode: Literal[GenerationMode.PHOTO] = GenerationMode.PHOTO
    avatar_id: Optional[uuid.UUID] = None
    reference_image_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    prompt: str = Field(min_length=1)
    style: PhotoStyle = "casual"

    @model_validator(mode="after")
    def _require_subject(self):
        if self.avatar_id is None and self.reference_image_id is None:
            raise ValueError("Either avatarId or referenceImageId is required")
        return self


class ProductVideoRequest(_CommonRequest):
    """Mode C: product-demo video, one or more action scenes."""

    mode: Literal[GenerationMode.PRODUCT_VIDEO] = GenerationMode.PRODUCT_VIDEO
    product_id: uuid.UUID
    avatar_id: Optional[uuid.UUID] = None
    reference_image_id: Optional[uuid.UUID] = None
    scenes: list[ProductScene] = Field(min_length=1)

    @field_validator("scenes")
    @classmethod
    def _scene_limit(cls, v):
        return _within_scene_limit(v)

    @field_validator("scenes", mode="before")
    @classmethod
    def _drop_null_scenes(cls, v):
        # Clients sometimes send sparse arrays from form builders
        if isinstance(v, list):
            return [s for s in v if s is not None]
        return v


GenerationRequest = Annotated[
    Union[AvatarVideoRequest, PhotoRequest, ProductVideoRequest],
    Field(discriminator="mode"),
]

_request_adapter: TypeAdapter = TypeAdapter(GenerationRequest)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("MODE_A", "MODE_B", "MODE_C"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def parse_generation_request(data: dict):
    """Validate a raw request body into the mode-specific request model.

    Raises:
        GenerationError: ``ErrorKind.VALIDATION`` describing every bad field.
    """
    try:
        return _request_adapter.validate_python(data)
    except ValidationError as e:
        raise GenerationError(ErrorKind.VALIDATION, _format_validation_error(e)) from e
