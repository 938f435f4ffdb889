"""Kling video generation adapter (stream-based backend).

The HTTP client submits a task and exposes its progress as an async
iterator of status updates; the adapter consumes that iterator until a
terminal ``completed`` or ``failed`` update, then downloads the result.

Usage:
    client = KlingClient(access_key, secret_key)
    task_id = await client.submit(prompt, duration=5, aspect_ratio="9:16", tier="pro")
    async for update in client.poll(task_id):
        ...
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from ugcpipe.config import settings
from ugcpipe.providers.base import (
    ProgressCallback,
    ProviderConfigError,
    ProviderResult,
    VideoProvider,
    VideoRequest,
    coerce_aspect_ratio,
    coerce_duration,
    report_progress,
)
from ugcpipe.providers.retry import transient_retry

logger = logging.getLogger(__name__)

KLING_TIERS = ("standard", "pro")
TERMINAL_STATUSES = ("completed", "failed")


@dataclass
class KlingUpdate:
    """One status update from a Kling task."""

    status: str  # pending | processing | completed | failed
    progress: Optional[int] = None
    result_url: Optional[str] = None
    error: Optional[str] = None


class KlingError(Exception):
    """Raised when Kling rejects a task submission."""


class KlingClient:
    """Async client for the Kling video API."""

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        poll_max: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_key = access_key
        self.secret_key = secret_key
        self.base_url = (base_url or settings.kling.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.kling.request_timeout
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.providers.poll_interval
        )
        self.poll_max = poll_max if poll_max is not None else settings.providers.poll_max
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.access_key}",
                    "X-API-Key": self.secret_key,
                },
                follow_redirects=True,
                timeout=httpx.Timeout(settings.providers.download_timeout, connect=self.timeout),
                transport=self._transport,
            )
        return self._client

    @transient_retry()
    async def submit(self, prompt: str, *, duration: int, aspect_ratio: str, tier: str) -> str:
        """Queue a generation task and return its task id."""
        response = await self.client.post(
            "/v1/video/generate",
            json={
                "prompt": prompt,
                "duration": duration,
                "aspect_ratio": aspect_ratio,
                "mode": tier,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        task_id = response.json().get("task_id")
        if not task_id:
            raise KlingError("No task_id returned from Kling API")
        logger.info(f"Queued Kling task {task_id} ({tier})")
        return task_id

    @transient_retry()
    async def query(self, task_id: str) -> KlingUpdate:
        response = await self.client.get(f"/v1/video/query/{task_id}", timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        return KlingUpdate(
            status=data.get("status", "pending"),
            progress=data.get("progress"),
            result_url=data.get("video_url"),
            error=data.get("error_message"),
        )

    async def poll(self, task_id: str) -> AsyncIterator[KlingUpdate]:
        """Yield status updates until a terminal one, at most ``poll_max`` times.

        The iterator simply stops when the ceiling is reached; callers treat
        an iterator that ends without a terminal update as a timeout.
        """
        for attempt in range(self.poll_max):
            update = await self.query(task_id)
            yield update
            if update.status in TERMINAL_STATUSES:
                return
            if attempt + 1 < self.poll_max:
                await asyncio.sleep(self.poll_interval)

    @transient_retry()
    async def download(self, url: str) -> tuple[bytes, str]:
        """Fetch a finished clip without the API credentials."""
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=settings.providers.download_timeout,
            transport=self._transport,
        ) as http:
            response = await http.get(httpx.URL(self.base_url).join(url))
            response.raise_for_status()
            mime_type = response.headers.get("content-type", "video/mp4").split(";")[0]
            return response.content, mime_type

    async def close(self):
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


class KlingProvider(VideoProvider):
    """Premium video tiers backed by Kling (``standard`` or ``pro`` quality).

    A client built from settings is closed after each ``generate`` call; an
    injected client is left to its owner.
    """

    name = "kling"
    supported_aspect_ratios = ("9:16", "16:9")

    def __init__(self, tier: str = "standard", client: Optional[KlingClient] = None):
        if tier not in KLING_TIERS:
            raise ValueError(f"Unsupported Kling tier: {tier}. Supported: {list(KLING_TIERS)}")
        self.tier = tier
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> KlingClient:
        if self._client is None:
            if not (settings.kling.access_key and settings.kling.secret_key):
                raise ProviderConfigError("Kling API credentials are not configured")
            self._client = KlingClient(settings.kling.access_key, settings.kling.secret_key)
        return self._client

    async def generate(
        self,
        request: VideoRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProviderResult:
        aspect_ratio = coerce_aspect_ratio(request.aspect_ratio, self.supported_aspect_ratios)
        duration = coerce_duration(request.duration)

        try:
            client = self.client
            task_id = await client.submit(
                request.prompt, duration=duration, aspect_ratio=aspect_ratio, tier=self.tier
            )
            attempt = 0
            async for update in client.poll(task_id):
                await report_progress(on_progress, update.status.upper(), attempt)
                attempt += 1
                if update.status == "failed":
                    return ProviderResult.failed(update.error or "Kling generation failed")
                if update.status == "completed":
                    if not update.result_url:
                        return ProviderResult.failed("Kling task completed without a video URL")
                    data, mime_type = await client.download(update.result_url)
                    return ProviderResult.completed(data, mime_type)
        except (httpx.HTTPError, KlingError, ProviderConfigError) as e:
            logger.error(f"Kling generation error: {e}")
            return ProviderResult.failed(f"Kling generation failed: {e}")
        except ValueError as e:
            # Non-JSON body from the API
            logger.error(f"Kling returned an unreadable response: {e}")
            return ProviderResult.failed("Kling returned an unreadable response")
        finally:
            if self._owns_client and self._client is not None:
                await self._client.close()

        return ProviderResult.timed_out("Maximum polling time exceeded")
