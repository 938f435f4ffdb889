import httpx
import pytest
from google.genai import errors

from ugcpipe.providers.base import (
    coerce_aspect_ratio,
    coerce_duration,
    fetch_reference_images,
    report_progress,
)
from ugcpipe.providers.kling import KlingProvider
from ugcpipe.providers.registry import get_video_provider
from ugcpipe.providers.retry import is_retriable
from ugcpipe.providers.veo import VeoProvider


def test_coerce_aspect_ratio():
    assert coerce_aspect_ratio("16:9", ("9:16", "16:9")) == "16:9"
    assert coerce_aspect_ratio("1:1", ("9:16", "16:9")) == "9:16"
    assert coerce_aspect_ratio("4:3", ("9:16", "16:9", "1:1")) == "1:1"
    assert coerce_aspect_ratio("wide", ("9:16", "16:9")) == "9:16"


def test_coerce_duration():
    assert coerce_duration(8) == 8
    assert coerce_duration(10) == 8
    assert coerce_duration(7) == 6
    assert coerce_duration(1) == 5


@pytest.mark.asyncio
async def test_report_progress_accepts_sync_and_async_callbacks():
    seen = []

    async def async_callback(label, attempt):
        seen.append(("async", label, attempt))

    await report_progress(lambda label, attempt: seen.append(("sync", label, attempt)), "PROCESSING", 1)
    await report_progress(async_callback, "COMPLETED", 2)
    await report_progress(None, "IGNORED", 3)

    assert seen == [("sync", "PROCESSING", 1), ("async", "COMPLETED", 2)]


@pytest.mark.asyncio
async def test_relative_reference_urls_resolve_against_public_url():
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, content=b"img", headers={"content-type": "image/webp; q=1"})

    images = await fetch_reference_images(
        ["/files/outputs/a.webp"], timeout=5, transport=httpx.MockTransport(handler)
    )

    assert images == [(b"img", "image/webp")]
    assert requested == ["http://127.0.0.1:8000/files/outputs/a.webp"]


def test_registry_routes_tiers():
    assert isinstance(get_video_provider("default"), VeoProvider)
    standard = get_video_provider("premium-standard")
    pro = get_video_provider("premium-pro")
    assert isinstance(standard, KlingProvider) and standard.tier == "standard"
    assert isinstance(pro, KlingProvider) and pro.tier == "pro"
    with pytest.raises(ValueError):
        get_video_provider("budget")


def test_retry_policy_targets_transient_errors():
    request = httpx.Request("GET", "https://api.test")

    def status_error(code):
        return httpx.HTTPStatusError("error", request=request, response=httpx.Response(code, request=request))

    assert is_retriable(status_error(429))
    assert is_retriable(status_error(503))
    assert not is_retriable(status_error(404))
    assert is_retriable(httpx.ConnectError("refused", request=request))
    assert is_retriable(errors.ClientError(429, {"error": {"code": 429, "message": "quota"}}))
    assert not is_retriable(errors.ClientError(400, {"error": {"code": 400, "message": "bad"}}))
    assert not is_retriable(ValueError("bad input"))
