"""Kling adapter against a mocked HTTP transport."""

import json

import httpx
import pytest

from ugcpipe.config import settings
from ugcpipe.errors import ErrorKind
from ugcpipe.providers.base import VideoRequest
from ugcpipe.providers import kling
from ugcpipe.providers.kling import KlingClient, KlingProvider


class KlingStub:
    """Scripted Kling API: queued task statuses served one per query."""

    def __init__(self, statuses, submit_response=None, submit_status=200):
        self.statuses = list(statuses)
        self.submit_response = submit_response if submit_response is not None else {"task_id": "task-42"}
        self.submit_status = submit_status
        self.submitted = []
        self.queries = 0
        self.headers = None
        self.download_headers = None
        self.query_body = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/video/generate":
            self.headers = request.headers
            self.submitted.append(json.loads(request.content))
            return httpx.Response(self.submit_status, json=self.submit_response)
        if request.url.path == "/v1/video/query/task-42":
            self.queries += 1
            if self.query_body is not None:
                return httpx.Response(200, text=self.query_body)
            return httpx.Response(200, json=self.statuses.pop(0) if self.statuses else {"status": "processing"})
        if request.url.host == "cdn.kling.test":
            self.download_headers = request.headers
            return httpx.Response(200, content=b"kling-mp4", headers={"content-type": "video/mp4"})
        return httpx.Response(404)


def _provider(stub, tier="pro", poll_max=5):
    client = KlingClient(
        "access",
        "secret",
        base_url="https://kling.test",
        poll_interval=0,
        poll_max=poll_max,
        transport=httpx.MockTransport(stub),
    )
    return KlingProvider(tier=tier, client=client), client


@pytest.mark.asyncio
async def test_streams_until_completed_then_downloads():
    stub = KlingStub(
        [
            {"status": "pending"},
            {"status": "processing", "progress": 40},
            {"status": "completed", "video_url": "https://cdn.kling.test/out.mp4"},
        ]
    )
    provider, client = _provider(stub)
    labels = []

    result = await provider.generate(
        VideoRequest(prompt="Unbox the bottle", duration=7, aspect_ratio="1:1"),
        on_progress=lambda label, attempt: labels.append((label, attempt)),
    )
    await client.close()

    assert result.ok
    assert result.media == b"kling-mp4"
    assert result.mime_type == "video/mp4"
    assert labels == [("PENDING", 0), ("PROCESSING", 1), ("COMPLETED", 2)]
    assert stub.submitted == [
        {"prompt": "Unbox the bottle", "duration": 6, "aspect_ratio": "9:16", "mode": "pro"}
    ]
    assert stub.headers["authorization"] == "Bearer access"
    assert stub.headers["x-api-key"] == "secret"
    assert "authorization" not in stub.download_headers
    assert "x-api-key" not in stub.download_headers


@pytest.mark.asyncio
async def test_failed_task_is_a_provider_failure():
    stub = KlingStub([{"status": "failed", "error_message": "Prompt rejected"}])
    provider, client = _provider(stub, tier="standard")

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert not result.ok
    assert result.error == "Prompt rejected"
    assert result.error_kind == ErrorKind.PROVIDER_FAILURE
    assert stub.submitted[0]["mode"] == "standard"


@pytest.mark.asyncio
async def test_poll_ceiling_is_a_timeout():
    stub = KlingStub([])
    provider, client = _provider(stub, poll_max=3)

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert result.error_kind == ErrorKind.PROVIDER_TIMEOUT
    assert result.error == "Maximum polling time exceeded"
    assert stub.queries == 3


@pytest.mark.asyncio
async def test_missing_task_id():
    provider, client = _provider(KlingStub([], submit_response={"status": "queued"}))

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert result.error_kind == ErrorKind.PROVIDER_FAILURE
    assert "No task_id" in result.error


@pytest.mark.asyncio
async def test_rejected_submission_is_not_retried():
    stub = KlingStub([], submit_response={"error": "bad duration"}, submit_status=400)
    provider, client = _provider(stub)

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert result.error_kind == ErrorKind.PROVIDER_FAILURE
    assert len(stub.submitted) == 1


@pytest.mark.asyncio
async def test_completed_without_url():
    provider, client = _provider(KlingStub([{"status": "completed"}]))

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert result.error == "Kling task completed without a video URL"


def test_unknown_kling_tier():
    with pytest.raises(ValueError):
        KlingProvider(tier="ultra")


@pytest.mark.asyncio
async def test_relative_result_url_resolves_against_api_host():
    def handler(request):
        if request.url.path == "/v1/video/generate":
            return httpx.Response(200, json={"task_id": "task-42"})
        if request.url.path == "/v1/video/query/task-42":
            return httpx.Response(200, json={"status": "completed", "video_url": "/media/out.mp4"})
        if request.url == "https://kling.test/media/out.mp4":
            return httpx.Response(200, content=b"relative-mp4")
        return httpx.Response(404)

    provider, client = _provider(handler)

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert result.media == b"relative-mp4"


@pytest.mark.asyncio
async def test_unreadable_query_body_is_a_provider_failure():
    stub = KlingStub([])
    stub.query_body = "<html>gateway</html>"
    provider, client = _provider(stub)

    result = await provider.generate(VideoRequest(prompt="x"))
    await client.close()

    assert not result.ok
    assert result.error_kind == ErrorKind.PROVIDER_FAILURE
    assert result.error == "Kling returned an unreadable response"


@pytest.mark.asyncio
async def test_missing_credentials_is_a_provider_failure(monkeypatch):
    monkeypatch.setattr(settings.kling, "access_key", "")

    result = await KlingProvider(tier="standard").generate(VideoRequest(prompt="x"))

    assert not result.ok
    assert result.error_kind == ErrorKind.PROVIDER_FAILURE
    assert "credentials are not configured" in result.error


@pytest.mark.asyncio
async def test_client_built_from_settings_is_closed_after_generate(monkeypatch):
    stub = KlingStub([{"status": "completed", "video_url": "https://cdn.kling.test/out.mp4"}])
    built = []

    def build_client(access_key, secret_key):
        client = KlingClient(
            access_key,
            secret_key,
            base_url="https://kling.test",
            poll_interval=0,
            poll_max=5,
            transport=httpx.MockTransport(stub),
        )
        built.append(client)
        return client

    monkeypatch.setattr(settings.kling, "access_key", "access")
    monkeypatch.setattr(settings.kling, "secret_key", "secret")
    monkeypatch.setattr(kling, "KlingClient", build_client)

    result = await KlingProvider(tier="pro").generate(VideoRequest(prompt="x"))

    assert result.ok
    assert len(built) == 1
    assert built[0]._client is None


@pytest.mark.asyncio
async def test_injected_client_is_left_open():
    stub = KlingStub([{"status": "completed", "video_url": "https://cdn.kling.test/out.mp4"}])
    provider, client = _provider(stub)

    await provider.generate(VideoRequest(prompt="x"))

    assert client._client is not None
    assert not client._client.is_closed
    await client.close()
