"""Gemini API client wrapper using the google-genai SDK.

Veo video and Gemini image models are both reached through the Gemini
Developer API with an API key.

Usage:
    from ugcpipe.providers.gemini_client import get_gemini_client

    client = get_gemini_client()
"""

from typing import Optional

from google import genai

from ugcpipe.config import settings
from ugcpipe.providers.base import ProviderConfigError

_client: Optional[genai.Client] = None


def get_gemini_client() -> genai.Client:
    """Get or create the shared Gemini client.

    Raises:
        ProviderConfigError: If no API key is configured.
    """
    global _client
    if _client is None:
        if not settings.google.api_key:
            raise ProviderConfigError("Google API key is not configured (UGCPIPE_GOOGLE__API_KEY)")
        _client = genai.Client(api_key=settings.google.api_key)
    return _client
