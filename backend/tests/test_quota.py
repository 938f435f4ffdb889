"""Legacy free-tier daily quota."""

from datetime import datetime

import pytest

from conftest import make_user
from ugcpipe.services import quota


def test_next_reset_is_following_midnight():
    now = datetime(2025, 3, 14, 23, 59, 30)
    assert quota.next_reset_time(now) == datetime(2025, 3, 15, 0, 0)


def test_needs_reset():
    now = datetime(2025, 3, 14, 12, 0)
    assert quota.needs_reset(None, now) is True
    assert quota.needs_reset(datetime(2025, 3, 14, 0, 0), now) is True
    assert quota.needs_reset(datetime(2025, 3, 15, 0, 0), now) is False


@pytest.mark.asyncio
async def test_expired_counters_read_as_zero(session):
    user = await make_user(
        session,
        tier="free",
        daily_video_quota=2,
        videos_generated_today=2,
        quota_reset_at=datetime(2025, 3, 14, 0, 0),
    )

    status = quota.check_quota(user, is_video=True, now=datetime(2025, 3, 14, 9, 0))

    assert status.allowed is True
    assert status.used == 0
    assert status.remaining == 2
    # A pure read: stored counters untouched
    assert user.videos_generated_today == 2


@pytest.mark.asyncio
async def test_quota_exhausted_within_day(session):
    user = await make_user(
        session,
        tier="free",
        daily_image_quota=3,
        images_generated_today=3,
        quota_reset_at=datetime(2025, 3, 15, 0, 0),
    )

    status = quota.check_quota(user, is_video=False, now=datetime(2025, 3, 14, 9, 0))

    assert status.allowed is False
    assert status.remaining == 0
    assert status.reset_at == datetime(2025, 3, 15, 0, 0)


@pytest.mark.asyncio
async def test_increment_resets_stale_day(session):
    user = await make_user(
        session,
        tier="free",
        videos_generated_today=7,
        images_generated_today=4,
        quota_reset_at=datetime(2025, 3, 14, 0, 0),
    )

    await quota.increment_quota(session, user, is_video=False, now=datetime(2025, 3, 14, 8, 0))

    assert user.videos_generated_today == 0
    assert user.images_generated_today == 1
    assert user.quota_reset_at == datetime(2025, 3, 15, 0, 0)


@pytest.mark.asyncio
async def test_increment_within_day_adds_one(session):
    user = await make_user(
        session,
        tier="free",
        videos_generated_today=1,
        quota_reset_at=datetime(2025, 3, 15, 0, 0),
    )

    await quota.increment_quota(session, user, is_video=True, now=datetime(2025, 3, 14, 8, 0))

    assert user.videos_generated_today == 2
