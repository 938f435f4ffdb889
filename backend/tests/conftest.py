"""Shared fixtures: a throwaway SQLite database, account factories and
in-process fakes for providers and storage."""

from typing import Optional

import pytest
import pytest_asyncio

from ugcpipe.db import init_database
from ugcpipe.db.engine import build_engine, build_sessionmaker
from ugcpipe.db.models import Avatar, Product, ReferenceImage, User
from ugcpipe.orchestrator.pipeline import Orchestrator
from ugcpipe.providers.base import (
    ImageProvider,
    ImageRequest,
    ProviderResult,
    VideoProvider,
    VideoRequest,
    report_progress,
)
from ugcpipe.services.storage import Storage, UploadResult


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine(tmp_path):
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_database(bind=db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

async def make_user(
    session,
    user_id: str = "user-1",
    *,
    tier: str = "starter",
    subscription_status: str = "active",
    credits: int = 1000,
    status: str = "APPROVED",
    **fields,
) -> User:
    user = User(
        id=user_id,
        name=fields.pop("name", "Test User"),
        status=status,
        subscription_tier=tier,
        subscription_status=subscription_status,
        credits_remaining=credits,
        credits_total=fields.pop("credits_total", max(credits, 0)),
        **fields,
    )
    session.add(user)
    await session.commit()
    return user


async def make_avatar(session, user_id: str = "user-1", **fields) -> Avatar:
    avatar = Avatar(
        user_id=user_id,
        name=fields.pop("name", "Maya"),
        description=fields.pop("description", "Woman in her late 20s, curly dark hair"),
        reference_image_url=fields.pop("reference_image_url", "https://cdn.test/avatars/maya.jpg"),
        **fields,
    )
    session.add(avatar)
    await session.commit()
    return avatar


async def make_product(session, user_id: str = "user-1", **fields) -> Product:
    product = Product(
        user_id=user_id,
        name=fields.pop("name", "Glow Serum"),
        description=fields.pop("description", "Vitamin C face serum"),
        image_url=fields.pop("image_url", "https://cdn.test/products/serum.jpg"),
        **fields,
    )
    session.add(product)
    await session.commit()
    return product


async def make_reference(session, user_id: str = "user-1", **fields) -> ReferenceImage:
    reference = ReferenceImage(
        user_id=user_id,
        name=fields.pop("name", "Beach selfie"),
        image_url=fields.pop("image_url", "https://cdn.test/refs/beach.jpg"),
        **fields,
    )
    session.add(reference)
    await session.commit()
    return reference


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeVideoProvider(VideoProvider):
    """Returns scripted results in call order; succeeds once the script runs out."""

    name = "fake-video"

    def __init__(self, results: Optional[list] = None):
        self.results = list(results or [])
        self.requests: list[VideoRequest] = []

    async def generate(self, request, on_progress=None):
        self.requests.append(request)
        await report_progress(on_progress, "PROCESSING", 0)
        outcome = self.results.pop(0) if self.results else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or ProviderResult.completed(b"fake-video-bytes", "video/mp4")


class FakeImageProvider(ImageProvider):
    name = "fake-image"

    def __init__(self, result: Optional[ProviderResult] = None):
        self.result = result or ProviderResult.completed(b"fake-png-bytes", "image/png")
        self.requests: list[ImageRequest] = []

    async def generate(self, request, on_progress=None):
        self.requests.append(request)
        return self.result


class FakeStorage(Storage):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: dict[str, bytes] = {}

    async def upload(self, data, filename, bucket):
        if self.fail:
            raise OSError("disk full")
        key = f"{bucket}/{filename}"
        self.uploads[key] = data
        return UploadResult(url=f"https://files.test/{key}")


@pytest.fixture
def video_provider():
    return FakeVideoProvider()


@pytest.fixture
def image_provider():
    return FakeImageProvider()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def provider_tiers():
    """Provider tiers requested through the orchestrator, in call order."""
    return []


@pytest.fixture
def orchestrator(session, video_provider, image_provider, storage, provider_tiers):
    def factory(tier):
        provider_tiers.append(tier)
        return video_provider

    return Orchestrator(
        session,
        video_provider_factory=factory,
        image_provider=image_provider,
        storage=storage,
    )
