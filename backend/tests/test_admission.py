"""Admission strategies and the combined admission check."""

import pytest

from conftest import make_user
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.schemas.requests import GenerationMode
from ugcpipe.services.admission import (
    CreditBasedAdmission,
    DailyQuotaAdmission,
    check_admission,
    strategy_for,
)
from ugcpipe.services.credits import get_balance


def _denial(strategy, user, mode=GenerationMode.AVATAR_VIDEO, units=1, tier="default"):
    with pytest.raises(GenerationError) as exc_info:
        strategy.check(user, mode, units, tier)
    return exc_info.value


@pytest.mark.asyncio
async def test_strategy_selected_by_tier(session):
    free = await make_user(session, "free-user", tier="free")
    paid = await make_user(session, "paid-user", tier="pro")

    assert isinstance(strategy_for(free), DailyQuotaAdmission)
    assert isinstance(strategy_for(paid), CreditBasedAdmission)


@pytest.mark.asyncio
async def test_trial_exhausted_only_at_zero_balance(session):
    empty = await make_user(session, "t0", tier="trial", subscription_status="inactive", credits=0)
    low = await make_user(session, "t1", tier="trial", subscription_status="inactive", credits=40)
    strategy = CreditBasedAdmission()

    assert _denial(strategy, empty).kind == ErrorKind.TRIAL_EXHAUSTED
    denial = _denial(strategy, low)
    assert denial.kind == ErrorKind.INSUFFICIENT_CREDITS
    assert denial.details == {"required": 100, "available": 40}


@pytest.mark.asyncio
async def test_inactive_subscription_without_balance(session):
    user = await make_user(session, tier="starter", subscription_status="cancelled", credits=0)

    denial = _denial(CreditBasedAdmission(), user)

    assert denial.kind == ErrorKind.INSUFFICIENT_CREDITS
    assert denial.message.startswith("No active subscription")


@pytest.mark.asyncio
async def test_cancelled_subscription_can_spend_leftover_credits(session):
    user = await make_user(session, tier="starter", subscription_status="cancelled", credits=300)

    decision = CreditBasedAdmission().check(user, GenerationMode.AVATAR_VIDEO, 3, "default")

    assert decision.required == 300
    assert decision.available == 300


@pytest.mark.asyncio
async def test_premium_tier_raises_required_amount(session):
    user = await make_user(session, credits=300)

    denial = _denial(CreditBasedAdmission(), user, units=2, tier="premium-pro")

    assert denial.kind == ErrorKind.INSUFFICIENT_CREDITS
    assert denial.details["required"] == 400


@pytest.mark.asyncio
async def test_check_admission_rejects_unapproved(session):
    await make_user(session, status="SUSPENDED")

    with pytest.raises(GenerationError) as exc_info:
        await check_admission(session, "user-1", GenerationMode.PHOTO)
    assert exc_info.value.kind == ErrorKind.NOT_APPROVED


@pytest.mark.asyncio
async def test_check_does_not_charge(session):
    await make_user(session, credits=500)

    user, strategy, decision = await check_admission(
        session, "user-1", GenerationMode.PRODUCT_VIDEO, 2, "premium-standard"
    )

    assert decision.required == 300
    assert await get_balance(session, "user-1") == 500


@pytest.mark.asyncio
async def test_settle_charges_only_completed_units(session):
    await make_user(session, credits=500)
    user, strategy, _ = await check_admission(session, "user-1", GenerationMode.AVATAR_VIDEO, 3)

    settlement = await strategy.settle(session, user, GenerationMode.AVATAR_VIDEO, 1, "default")

    assert settlement.success is True
    assert settlement.charged == 100
    assert await get_balance(session, "user-1") == 400


@pytest.mark.asyncio
async def test_quota_settle_skips_empty_jobs(session):
    user = await make_user(session, tier="free", credits=0)
    strategy = DailyQuotaAdmission()

    settlement = await strategy.settle(session, user, GenerationMode.PHOTO, 0, None)

    assert settlement.charged == 0
    assert user.images_generated_today == 0
