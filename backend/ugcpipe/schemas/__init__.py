"""Request and result schemas for the generation pipeline."""

from ugcpipe.schemas.requests import (
    AvatarScene,
    AvatarVideoRequest,
    GenerationMode,
    PhotoRequest,
    ProductScene,
    ProductVideoRequest,
    ProviderTier,
    parse_generation_request,
)
from ugcpipe.schemas.results import PhotoGenerationResult, SceneOutput, VideoGenerationResult

__all__ = [
    "AvatarScene",
    "AvatarVideoRequest",
    "GenerationMode",
    "PhotoRequest",
    "ProductScene",
    "ProductVideoRequest",
    "ProviderTier",
    "parse_generation_request",
    "PhotoGenerationResult",
    "SceneOutput",
    "VideoGenerationResult",
]
