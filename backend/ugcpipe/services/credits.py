"""Credit ledger: pricing, deduction and top-up of user balances.

Deductions are a single conditional UPDATE, so two concurrent requests
for the same user can never drive the balance below zero.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.config import settings
from ugcpipe.db.models import User
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.schemas.requests import GenerationMode

logger = logging.getLogger(__name__)


@dataclass
class DeductResult:
    success: bool
    remaining: Optional[int] = None
    error: Optional[str] = None


@dataclass
class CreditInfo:
    subscription_tier: str
    subscription_status: str
    credits_remaining: int
    credits_total: int

    @property
    def percentage_remaining(self) -> int:
        if self.credits_total <= 0:
            return 0
        return round(100 * self.credits_remaining / self.credits_total)


def scene_cost(provider_tier: str = "default") -> int:
    """Credits charged per video scene for a provider tier."""
    prices = settings.credits.video_scene_cost
    if provider_tier not in prices:
        raise GenerationError(
            ErrorKind.VALIDATION,
            f"Unknown provider tier: {provider_tier}",
            {"supported": sorted(prices)},
        )
    return prices[provider_tier]


def cost(mode: GenerationMode, unit_count: int = 1, provider_tier: Optional[str] = None) -> int:
    """Price of ``unit_count`` units in ``mode``.

    Photo mode is a flat per-image price; video modes multiply the
    per-scene price of the provider tier by the scene count.
    """
    if mode is GenerationMode.PHOTO:
        return settings.credits.image_cost * unit_count
    return scene_cost(provider_tier or "default") * unit_count


async def get_balance(session: AsyncSession, user_id: str) -> Optional[int]:
    result = await session.execute(select(User.credits_remaining).where(User.id == user_id))
    return result.scalar_one_or_none()


async def deduct(
    session: AsyncSession,
    user_id: str,
    mode: GenerationMode,
    unit_count: int,
    provider_tier: Optional[str] = None,
) -> DeductResult:
    """Charge for ``unit_count`` completed units.

    Callers pass the number of units that actually produced output.
    """
    amount = cost(mode, unit_count, provider_tier)
    if amount <= 0:
        return DeductResult(success=True, remaining=await get_balance(session, user_id))

    result = await session.execute(
        update(User)
        .where(User.id == user_id, User.credits_remaining >= amount)
        .values(credits_remaining=User.credits_remaining - amount)
        .returning(User.credits_remaining)
    )
    remaining = result.scalar_one_or_none()
    await session.commit()

    if remaining is None:
        logger.warning(f"Could not deduct {amount} credits from {user_id}: insufficient balance")
        return DeductResult(success=False, error="Insufficient credits")
    logger.info(f"Deducted {amount} credits from {user_id} ({remaining} left)")
    return DeductResult(success=True, remaining=remaining)


async def add(session: AsyncSession, user_id: str, amount: int) -> int:
    """Administrative top-up. Returns the new balance.

    Raises:
        GenerationError: NOT_FOUND for an unknown user, VALIDATION for a
            non-positive amount.
    """
    if amount <= 0:
        raise GenerationError(ErrorKind.VALIDATION, "Credit amount must be positive")
    result = await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            credits_remaining=User.credits_remaining + amount,
            credits_total=User.credits_total + amount,
        )
        .returning(User.credits_remaining)
    )
    balance = result.scalar_one_or_none()
    await session.commit()
    if balance is None:
        raise GenerationError(ErrorKind.NOT_FOUND, f"User {user_id} not found")
    logger.info(f"Added {amount} credits to {user_id} ({balance} total)")
    return balance


async def get_credit_info(session: AsyncSession, user_id: str) -> CreditInfo:
    user = await session.get(User, user_id)
    if user is None:
        raise GenerationError(ErrorKind.NOT_FOUND, f"User {user_id} not found")
    return CreditInfo(
        subscription_tier=user.subscription_tier,
        subscription_status=user.subscription_status,
        credits_remaining=user.credits_remaining,
        credits_total=user.credits_total,
    )
