"""Media provider adapters normalized to one terminal-result interface."""

from ugcpipe.providers.base import (
    ImageProvider,
    ImageRequest,
    ProgressCallback,
    ProviderResult,
    ProviderStatus,
    VideoProvider,
    VideoRequest,
    coerce_aspect_ratio,
    coerce_duration,
)
from ugcpipe.providers.registry import get_image_provider, get_video_provider

__all__ = [
    "ImageProvider",
    "ImageRequest",
    "ProgressCallback",
    "ProviderResult",
    "ProviderStatus",
    "VideoProvider",
    "VideoRequest",
    "coerce_aspect_ratio",
    "coerce_duration",
    "get_image_provider",
    "get_video_provider",
]
