"""Provider registry for media adapters.

Routes a provider tier to the adapter that serves it:
- ``default``           -> VeoProvider
- ``premium-standard``  -> KlingProvider(tier="standard")
- ``premium-pro``       -> KlingProvider(tier="pro")
"""

from __future__ import annotations

import logging

from ugcpipe.providers.base import ImageProvider, VideoProvider

logger = logging.getLogger(__name__)

PROVIDER_TIERS = ("default", "premium-standard", "premium-pro")


def get_video_provider(provider_tier: str = "default") -> VideoProvider:
    """Return the video adapter for a provider tier.

    Raises:
        ValueError: If the tier is unknown.
    """
    if provider_tier == "default":
        from ugcpipe.providers.veo import VeoProvider

        logger.debug("Routing %s to VeoProvider", provider_tier)
        return VeoProvider()

    if provider_tier in ("premium-standard", "premium-pro"):
        from ugcpipe.providers.kling import KlingProvider

        kling_tier = "pro" if provider_tier == "premium-pro" else "standard"
        logger.debug("Routing %s to KlingProvider (%s)", provider_tier, kling_tier)
        return KlingProvider(tier=kling_tier)

    raise ValueError(f"Unknown provider tier: {provider_tier}. Supported: {list(PROVIDER_TIERS)}")


def get_image_provider() -> ImageProvider:
    """Return the image adapter used for photo jobs."""
    from ugcpipe.providers.nano_banana import NanoBananaProvider

    return NanoBananaProvider()
