"""Credit ledger pricing, deduction and top-up."""

import asyncio

import pytest

from conftest import make_user
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.schemas.requests import GenerationMode
from ugcpipe.services import credits


def test_cost_by_mode_and_tier():
    assert credits.cost(GenerationMode.PHOTO) == 50
    assert credits.cost(GenerationMode.AVATAR_VIDEO, 3) == 300
    assert credits.cost(GenerationMode.PRODUCT_VIDEO, 2, "premium-standard") == 300
    assert credits.cost(GenerationMode.AVATAR_VIDEO, 2, "premium-pro") == 400


def test_unknown_tier_is_rejected():
    with pytest.raises(GenerationError) as exc_info:
        credits.scene_cost("ultra")
    assert exc_info.value.kind == ErrorKind.VALIDATION


@pytest.mark.asyncio
async def test_deduct_reduces_balance(session):
    await make_user(session, credits=500)

    result = await credits.deduct(session, "user-1", GenerationMode.AVATAR_VIDEO, 2)

    assert result.success is True
    assert result.remaining == 300
    assert await credits.get_balance(session, "user-1") == 300


@pytest.mark.asyncio
async def test_deduct_never_goes_negative(session):
    await make_user(session, credits=120)

    result = await credits.deduct(session, "user-1", GenerationMode.AVATAR_VIDEO, 2)

    assert result.success is False
    assert result.error == "Insufficient credits"
    assert await credits.get_balance(session, "user-1") == 120


@pytest.mark.asyncio
async def test_deduct_zero_units_is_free(session):
    await make_user(session, credits=120)

    result = await credits.deduct(session, "user-1", GenerationMode.AVATAR_VIDEO, 0)

    assert result.success is True
    assert result.remaining == 120


@pytest.mark.asyncio
async def test_concurrent_deductions_cannot_overdraw(session, session_factory):
    await make_user(session, credits=150)

    async def charge():
        async with session_factory() as own_session:
            return await credits.deduct(own_session, "user-1", GenerationMode.AVATAR_VIDEO, 1)

    outcomes = await asyncio.gather(charge(), charge())

    assert sorted(o.success for o in outcomes) == [False, True]
    assert await credits.get_balance(session, "user-1") == 50


@pytest.mark.asyncio
async def test_add_increments_remaining_and_total(session):
    await make_user(session, credits=100, credits_total=800)

    balance = await credits.add(session, "user-1", 400)

    assert balance == 500
    info = await credits.get_credit_info(session, "user-1")
    assert info.credits_total == 1200
    assert info.percentage_remaining == 42


@pytest.mark.asyncio
async def test_add_rejects_bad_input(session):
    await make_user(session)

    with pytest.raises(GenerationError) as exc_info:
        await credits.add(session, "user-1", 0)
    assert exc_info.value.kind == ErrorKind.VALIDATION

    with pytest.raises(GenerationError) as exc_info:
        await credits.add(session, "nobody", 10)
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_credit_info_for_unknown_user(session):
    with pytest.raises(GenerationError) as exc_info:
        await credits.get_credit_info(session, "nobody")
    assert exc_info.value.kind == ErrorKind.NOT_FOUND
