"""Veo video generation adapter (poll-based backend).

Flow: submit a ``generate_videos`` job, then sleep and re-fetch the
long-running operation until it is done or the poll ceiling is reached.
A finished operation carries the clip either as inline bytes (possibly
base64 text) or as a URI that needs an API-key authenticated download.

Usage:
    provider = VeoProvider()
    result = await provider.generate(VideoRequest(prompt="...", duration=6))
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional

import httpx
from google.genai import errors, types

from ugcpipe.config import settings
from ugcpipe.providers.base import (
    ProgressCallback,
    ProviderConfigError,
    ProviderResult,
    VideoProvider,
    VideoRequest,
    coerce_aspect_ratio,
    coerce_duration,
    fetch_reference_images,
    report_progress,
)
from ugcpipe.providers.gemini_client import get_gemini_client
from ugcpipe.providers.retry import transient_retry

logger = logging.getLogger(__name__)

VIDEO_MIME_TYPE = "video/mp4"


class VeoProvider(VideoProvider):
    """Google Veo over the Gemini API."""

    name = "veo"
    supported_aspect_ratios = ("16:9", "9:16", "1:1")

    def __init__(
        self,
        client=None,
        *,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        poll_interval: Optional[float] = None,
        poll_max: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = client
        self.model = model or settings.google.video_model
        self.api_key = api_key if api_key is not None else settings.google.api_key
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.providers.poll_interval
        )
        self.poll_max = poll_max if poll_max is not None else settings.providers.poll_max
        self._transport = transport

    @property
    def client(self):
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    @transient_retry()
    async def _submit(self, prompt: str, config: types.GenerateVideosConfig, image: Optional[types.Image]):
        return await self.client.aio.models.generate_videos(
            model=self.model,
            prompt=prompt,
            image=image,
            config=config,
        )

    @transient_retry()
    async def _poll(self, operation_name: str):
        op_obj = types.GenerateVideosOperation(name=operation_name)
        return await self.client.aio.operations.get(operation=op_obj)

    @transient_retry()
    async def _download(self, uri: str) -> tuple[bytes, str]:
        async with httpx.AsyncClient(
            timeout=settings.providers.download_timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as http:
            response = await http.get(uri, params={"key": self.api_key})
            response.raise_for_status()
            mime_type = response.headers.get("content-type", VIDEO_MIME_TYPE).split(";")[0]
            return response.content, mime_type

    async def _start_frame(self, request: VideoRequest) -> Optional[types.Image]:
        # Veo conditions on a single start frame; the first reference wins
        if not request.reference_image_urls:
            return None
        images = await fetch_reference_images(
            request.reference_image_urls[:1],
            timeout=settings.providers.download_timeout,
            transport=self._transport,
        )
        if not images:
            logger.warning("Reference image unavailable, generating from prompt only")
            return None
        image_bytes, mime_type = images[0]
        return types.Image(image_bytes=image_bytes, mime_type=mime_type)

    async def generate(
        self,
        request: VideoRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProviderResult:
        aspect_ratio = coerce_aspect_ratio(request.aspect_ratio, self.supported_aspect_ratios)
        duration = coerce_duration(request.duration)
        prompt = request.prompt
        if not request.generate_audio:
            prompt += "\n\nSilent video: no speech, music or sound effects."

        config = types.GenerateVideosConfig(
            aspect_ratio=aspect_ratio,
            duration_seconds=duration,
        )

        try:
            image = await self._start_frame(request)
            logger.info(f"Submitting Veo job ({self.model}, {aspect_ratio}, {duration}s)")
            operation = await self._submit(prompt, config, image)

            attempt = 0
            while not operation.done and attempt < self.poll_max:
                await report_progress(on_progress, "PROCESSING", attempt)
                await asyncio.sleep(self.poll_interval)
                operation = await self._poll(operation.name)
                attempt += 1
                logger.debug(f"Veo poll {attempt}/{self.poll_max}: done={operation.done}")
        except (errors.APIError, httpx.HTTPError, OSError, ProviderConfigError) as e:
            logger.error(f"Veo generation error: {e}")
            return ProviderResult.failed(f"Veo generation failed: {e}")

        if not operation.done:
            return ProviderResult.timed_out(
                f"Video generation timed out after {self.poll_max * self.poll_interval:.0f} seconds"
            )

        await report_progress(on_progress, "COMPLETED", attempt)
        return await self._extract(operation)

    async def _extract(self, operation) -> ProviderResult:
        if operation.error:
            error = operation.error
            message = error.get("message") if isinstance(error, dict) else str(error)
            return ProviderResult.failed(message or "Video generation failed")

        response = operation.response
        videos = response.generated_videos if response else None
        if not videos:
            reasons = getattr(response, "rai_media_filtered_reasons", None) if response else None
            if reasons:
                return ProviderResult.failed(f"Content filtered: {'; '.join(reasons)}")
            return ProviderResult.failed("No video generated in response")

        video = videos[0].video
        if video is None:
            return ProviderResult.failed("Video data missing in response")

        if video.video_bytes:
            data = video.video_bytes
            if isinstance(data, str):
                try:
                    data = base64.b64decode(data)
                except (binascii.Error, ValueError):
                    return ProviderResult.failed("Video bytes are not valid base64")
            return ProviderResult.completed(data, video.mime_type or VIDEO_MIME_TYPE)

        if video.uri:
            logger.info(f"Downloading video from {video.uri}")
            try:
                data, mime_type = await self._download(video.uri)
            except httpx.HTTPError as e:
                return ProviderResult.failed(f"Failed to download video: {e}")
            return ProviderResult.completed(data, mime_type)

        return ProviderResult.failed("Unknown video format in response")
