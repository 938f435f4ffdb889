"""Gemini image generation adapter for single-photo jobs."""

import base64
import binascii
import logging
from typing import Optional

import httpx
from google.genai import errors, types

from ugcpipe.config import settings
from ugcpipe.providers.base import (
    ImageProvider,
    ImageRequest,
    ProgressCallback,
    ProviderConfigError,
    ProviderResult,
    fetch_reference_images,
    report_progress,
)
from ugcpipe.providers.gemini_client import get_gemini_client
from ugcpipe.providers.retry import transient_retry

logger = logging.getLogger(__name__)


class NanoBananaProvider(ImageProvider):
    """Gemini 3 Pro Image ("Nano Banana Pro") via ``generate_content``."""

    name = "nano-banana"

    def __init__(
        self,
        client=None,
        *,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = client
        self.model = model or settings.google.image_model
        self._transport = transport

    @property
    def client(self):
        if self._client is None:
            self._client = get_gemini_client()
        return self._client

    @transient_retry()
    async def _generate_content(self, contents: list):
        return await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
        )

    async def generate(
        self,
        request: ImageRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProviderResult:
        references = await fetch_reference_images(
            request.reference_image_urls,
            timeout=settings.providers.download_timeout,
            transport=self._transport,
        )
        contents: list = [request.prompt]
        contents.extend(
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
            for image_bytes, mime_type in references
        )

        await report_progress(on_progress, "PROCESSING", 0)
        try:
            response = await self._generate_content(contents)
        except (errors.APIError, httpx.HTTPError, OSError, ProviderConfigError) as e:
            logger.error(f"Image generation error: {e}")
            return ProviderResult.failed(f"Image generation failed: {e}")

        text_parts = []
        for candidate in response.candidates or []:
            if not candidate.content or not candidate.content.parts:
                continue
            for part in candidate.content.parts:
                if part.text:
                    text_parts.append(part.text)
                if part.inline_data and part.inline_data.data:
                    data = part.inline_data.data
                    if isinstance(data, str):
                        try:
                            data = base64.b64decode(data)
                        except (binascii.Error, ValueError):
                            return ProviderResult.failed("Image bytes are not valid base64")
                    await report_progress(on_progress, "COMPLETED", 1)
                    return ProviderResult.completed(data, part.inline_data.mime_type or "image/png")

        if text_parts:
            logger.warning(f"Image model returned text only: {' '.join(text_parts)[:200]}")
        return ProviderResult.failed("No image generated in response")
