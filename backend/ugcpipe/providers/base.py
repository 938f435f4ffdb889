"""Abstract base classes and result types for media provider adapters.

Every backend (poll-based, stream-based or single-shot) is wrapped in an
adapter that blocks until the provider reaches a terminal state and returns a
``ProviderResult``. Terminal provider failures are reported in the result,
never raised.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Union

import httpx

from ugcpipe.config import settings
from ugcpipe.errors import ErrorKind

logger = logging.getLogger(__name__)

SUPPORTED_DURATIONS = (5, 6, 8)
DEFAULT_DURATION = 6

# width / height for each aspect ratio label
ASPECT_RATIO_VALUES = {
    "16:9": 16 / 9,
    "9:16": 9 / 16,
    "1:1": 1.0,
}

ProgressCallback = Callable[[str, int], Union[None, Awaitable[None]]]


class ProviderConfigError(Exception):
    """Raised when an adapter is missing the credentials it needs."""


class ProviderStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class ProviderResult:
    """Terminal outcome of one provider call."""

    status: ProviderStatus
    media: Optional[bytes] = None
    mime_type: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.status is ProviderStatus.COMPLETED

    @classmethod
    def completed(cls, media: bytes, mime_type: str) -> "ProviderResult":
        return cls(status=ProviderStatus.COMPLETED, media=media, mime_type=mime_type)

    @classmethod
    def failed(cls, error: str, kind: ErrorKind = ErrorKind.PROVIDER_FAILURE) -> "ProviderResult":
        return cls(status=ProviderStatus.FAILED, error=error, error_kind=kind)

    @classmethod
    def timed_out(cls, error: str) -> "ProviderResult":
        return cls.failed(error, ErrorKind.PROVIDER_TIMEOUT)


@dataclass
class VideoRequest:
    prompt: str
    duration: int = DEFAULT_DURATION
    aspect_ratio: str = "9:16"
    generate_audio: bool = True
    reference_image_urls: Sequence[str] = field(default_factory=list)


@dataclass
class ImageRequest:
    prompt: str
    aspect_ratio: str = "9:16"
    reference_image_urls: Sequence[str] = field(default_factory=list)


def coerce_aspect_ratio(value: str, supported: Sequence[str]) -> str:
    """Map ``value`` onto the nearest supported aspect ratio.

    Distance is measured on the width/height ratio. Unparseable values fall
    back to the first supported entry.
    """
    if value in supported:
        return value
    try:
        width, height = (float(part) for part in value.split(":"))
        target = width / height
    except (ValueError, ZeroDivisionError):
        return supported[0]
    return min(supported, key=lambda label: abs(ASPECT_RATIO_VALUES[label] - target))


def coerce_duration(value: int) -> int:
    """Clamp a requested duration to the nearest supported clip length."""
    if value in SUPPORTED_DURATIONS:
        return value
    return min(SUPPORTED_DURATIONS, key=lambda d: (abs(d - value), d))


async def report_progress(
    callback: Optional[ProgressCallback],
    label: str,
    attempt: int,
) -> None:
    """Invoke an optional progress callback, sync or async."""
    if callback is None:
        return
    outcome = callback(label, attempt)
    if outcome is not None:
        await outcome


async def fetch_reference_images(
    urls: Sequence[str],
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[tuple[bytes, str]]:
    """Download reference images, skipping any that cannot be fetched.

    Returns:
        List of ``(image_bytes, mime_type)`` in the order given.
    """
    images: list[tuple[bytes, str]] = []
    if not urls:
        return images
    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, transport=transport
    ) as client:
        for url in urls:
            if url.startswith("/"):
                url = settings.server.public_url.rstrip("/") + url
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(f"Skipping reference image {url}: {e}")
                continue
            mime_type = response.headers.get("content-type", "image/jpeg").split(";")[0]
            images.append((response.content, mime_type))
    return images


class VideoProvider(ABC):
    """Adapter interface for video generation backends."""

    name: str = "video"
    supported_aspect_ratios: Sequence[str] = ("9:16", "16:9", "1:1")

    @abstractmethod
    async def generate(
        self,
        request: VideoRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProviderResult:
        """Generate one clip and block until the provider reaches a terminal state.

        Args:
            request: Prompt, duration, aspect ratio, audio flag and reference URLs.
            on_progress: Optional ``(status_label, attempt)`` callback.

        Returns:
            ProviderResult with media bytes on success, error and kind on failure.
        """
        ...


class ImageProvider(ABC):
    """Adapter interface for single-image generation backends."""

    name: str = "image"

    @abstractmethod
    async def generate(
        self,
        request: ImageRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProviderResult:
        ...
