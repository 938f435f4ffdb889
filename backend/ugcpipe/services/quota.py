"""Legacy daily quota for free-tier accounts.

Free accounts predate credits: they get a number of videos and images per
UTC day instead of a balance. Counters reset at midnight UTC. Checking is a
pure read (expired counters read as zero); the reset itself happens on the
next increment.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.db.models import User

logger = logging.getLogger(__name__)


@dataclass
class QuotaStatus:
    allowed: bool
    used: int
    limit: int
    reset_at: Optional[datetime]

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the database stores datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def next_reset_time(now: Optional[datetime] = None) -> datetime:
    """Next midnight UTC strictly after ``now``."""
    now = now or utcnow()
    return datetime.combine(now.date() + timedelta(days=1), time.min)


def needs_reset(reset_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if reset_at is None:
        return True
    return (now or utcnow()) >= reset_at


def check_quota(user: User, is_video: bool, now: Optional[datetime] = None) -> QuotaStatus:
    """Compute the user's standing for one more video (or image) today."""
    expired = needs_reset(user.quota_reset_at, now)
    if is_video:
        used = 0 if expired else user.videos_generated_today
        limit = user.daily_video_quota
    else:
        used = 0 if expired else user.images_generated_today
        limit = user.daily_image_quota
    return QuotaStatus(
        allowed=limit - used > 0,
        used=used,
        limit=limit,
        reset_at=None if expired else user.quota_reset_at,
    )


async def increment_quota(
    session: AsyncSession,
    user: User,
    is_video: bool,
    now: Optional[datetime] = None,
) -> None:
    """Count one generation against today's quota, resetting the day if due."""
    now = now or utcnow()
    if needs_reset(user.quota_reset_at, now):
        values = {
            "videos_generated_today": 1 if is_video else 0,
            "images_generated_today": 0 if is_video else 1,
            "quota_reset_at": next_reset_time(now),
        }
    elif is_video:
        values = {"videos_generated_today": User.videos_generated_today + 1}
    else:
        values = {"images_generated_today": User.images_generated_today + 1}

    await session.execute(update(User).where(User.id == user.id).values(**values))
    await session.commit()
    await session.refresh(user)
    logger.info(
        f"Quota for {user.id}: {user.videos_generated_today} videos, "
        f"{user.images_generated_today} images today"
    )
