"""Admission control: may this user start this generation?

Two strategies share one contract. Paid and trial accounts are metered by
the credit ledger; legacy free accounts by the daily quota. ``check`` is a
pure read that raises ``GenerationError`` on denial; ``settle`` charges for
the work that actually completed.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.db.models import User
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.schemas.requests import GenerationMode
from ugcpipe.services import credits, quota

logger = logging.getLogger(__name__)

APPROVED = "APPROVED"
FREE_TIER = "free"
TRIAL_TIER = "trial"


@dataclass
class AdmissionDecision:
    """Outcome of a successful admission check."""

    strategy: str
    required: int
    available: int


@dataclass
class Settlement:
    success: bool
    charged: int = 0
    remaining: Optional[int] = None
    error: Optional[str] = None


class AdmissionStrategy(ABC):
    """Metering strategy for one class of account."""

    name: str

    @abstractmethod
    def check(
        self,
        user: User,
        mode: GenerationMode,
        unit_count: int,
        provider_tier: Optional[str],
    ) -> AdmissionDecision:
        """Return a decision or raise GenerationError with the denial kind."""
        ...

    @abstractmethod
    async def settle(
        self,
        session: AsyncSession,
        user: User,
        mode: GenerationMode,
        completed_count: int,
        provider_tier: Optional[str],
    ) -> Settlement:
        """Charge for ``completed_count`` units that produced output."""
        ...


class CreditBasedAdmission(AdmissionStrategy):
    name = "credits"

    def check(self, user, mode, unit_count, provider_tier):
        required = credits.cost(mode, unit_count, provider_tier)
        balance = user.credits_remaining
        details = {"required": required, "available": max(0, balance)}
        is_trial = user.subscription_tier == TRIAL_TIER

        if is_trial and balance <= 0:
            raise GenerationError(
                ErrorKind.TRIAL_EXHAUSTED,
                "Trial credits exhausted. Please upgrade to a monthly plan to continue.",
                details,
            )

        is_active = user.subscription_status == "active" or (is_trial and balance > 0)
        if not is_active and balance <= 0:
            raise GenerationError(
                ErrorKind.INSUFFICIENT_CREDITS,
                "No active subscription. Please subscribe to continue.",
                details,
            )

        if balance < required:
            raise GenerationError(
                ErrorKind.INSUFFICIENT_CREDITS,
                f"Insufficient credits. Required: {required}, Available: {balance}",
                details,
            )
        return AdmissionDecision(strategy=self.name, required=required, available=balance)

    async def settle(self, session, user, mode, completed_count, provider_tier):
        if completed_count <= 0:
            return Settlement(success=True)
        amount = credits.cost(mode, completed_count, provider_tier)
        result = await credits.deduct(session, user.id, mode, completed_count, provider_tier)
        return Settlement(
            success=result.success,
            charged=amount if result.success else 0,
            remaining=result.remaining,
            error=result.error,
        )


class DailyQuotaAdmission(AdmissionStrategy):
    """Legacy free tier: one unit of daily quota per generation request."""

    name = "daily_quota"

    def check(self, user, mode, unit_count, provider_tier):
        status = quota.check_quota(user, mode.is_video)
        if not status.allowed:
            kind = "video" if mode.is_video else "image"
            raise GenerationError(
                ErrorKind.INSUFFICIENT_CREDITS,
                f"Daily {kind} quota exceeded",
                {"required": 1, "available": status.remaining, "limit": status.limit},
            )
        return AdmissionDecision(strategy=self.name, required=1, available=status.remaining)

    async def settle(self, session, user, mode, completed_count, provider_tier):
        if completed_count <= 0:
            return Settlement(success=True)
        await quota.increment_quota(session, user, mode.is_video)
        return Settlement(success=True, charged=1)


def strategy_for(user: User) -> AdmissionStrategy:
    if user.subscription_tier == FREE_TIER:
        return DailyQuotaAdmission()
    return CreditBasedAdmission()


async def load_approved_user(session: AsyncSession, user_id: str) -> User:
    """Fetch the user, denying missing or unapproved accounts."""
    user = await session.get(User, user_id)
    if user is None or user.status != APPROVED:
        raise GenerationError(
            ErrorKind.NOT_APPROVED,
            "Account must be approved to generate content",
        )
    return user


async def check_admission(
    session: AsyncSession,
    user_id: str,
    mode: GenerationMode,
    unit_count: int = 1,
    provider_tier: Optional[str] = None,
) -> tuple[User, AdmissionStrategy, AdmissionDecision]:
    """Run the admission checks in order; raises GenerationError on denial."""
    user = await load_approved_user(session, user_id)
    strategy = strategy_for(user)
    decision = strategy.check(user, mode, unit_count, provider_tier)
    logger.info(
        f"Admitted {user_id} for {mode.value} x{unit_count} "
        f"via {decision.strategy} (required {decision.required}, available {decision.available})"
    )
    return user, strategy, decision
