"""API route handlers and Pydantic response schemas."""

import logging
import secrets
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.config import settings
from ugcpipe.db import get_session
from ugcpipe.db.models import User
from ugcpipe.errors import ErrorKind
from ugcpipe.orchestrator import store
from ugcpipe.orchestrator.pipeline import Orchestrator
from ugcpipe.schemas.jobs import JobDetail, JobSummary
from ugcpipe.services import credits, quota

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# Denial and failure kinds mapped to transport status codes
STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_APPROVED: 403,
    ErrorKind.INSUFFICIENT_CREDITS: 429,
    ErrorKind.TRIAL_EXHAUSTED: 402,
    ErrorKind.VALIDATION: 400,
    ErrorKind.PROVIDER_TIMEOUT: 500,
    ErrorKind.PROVIDER_FAILURE: 500,
    ErrorKind.UPLOAD_FAILURE: 500,
    ErrorKind.UNKNOWN: 500,
}


def status_for(kind: Optional[ErrorKind]) -> int:
    return STATUS_FOR_KIND.get(kind, 500) if kind else 500


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreditsResponse(_CamelModel):
    subscription_tier: str
    subscription_status: str
    credits_remaining: int
    credits_total: int
    percentage_remaining: int
    daily_quota: Optional[dict[str, Any]] = None


class AddCreditsRequest(BaseModel):
    amount: int = Field(gt=0)


class AddCreditsResponse(_CamelModel):
    user_id: str
    credits_remaining: int


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_orchestrator(session: AsyncSession = Depends(get_session)) -> Orchestrator:
    return Orchestrator(session)


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, asserted by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    expected = settings.server.admin_token
    if not expected or not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="Admin access required")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/generate")
async def generate(
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Run one generation request to completion.

    The body is discriminated by ``mode`` (MODE_A avatar video, MODE_B photo,
    MODE_C product video). Success returns 200; denials and failures return
    the mapped status with the same result body, including the job id when
    a job was created.
    """
    result = await orchestrator.generate(user_id, payload)
    body = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    if result.success:
        return body
    return JSONResponse(status_code=status_for(result.error_kind), content=body)


@router.get("/jobs", response_model=list[JobSummary], response_model_by_alias=True)
async def list_jobs(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """List the caller's jobs, newest first."""
    return await store.list_jobs(session, user_id, limit)


@router.get("/jobs/{job_id}", response_model=JobDetail, response_model_by_alias=True)
async def get_job(
    job_id: uuid.UUID,
    user_id: str = Depends(current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Get a job with its ordered scenes and outputs (404 unless owned by the caller)."""
    return await store.get_job(session, user_id, job_id)


@router.get("/user/credits", response_model=CreditsResponse)
async def get_credits(
    user_id: str = Depends(current_user_id),
    session: AsyncSession = Depends(get_session),
):
    info = await credits.get_credit_info(session, user_id)

    daily_quota = None
    if info.subscription_tier == "free":
        user = await session.get(User, user_id)
        videos = quota.check_quota(user, is_video=True)
        images = quota.check_quota(user, is_video=False)
        daily_quota = {
            "videosRemaining": videos.remaining,
            "imagesRemaining": images.remaining,
            "resetAt": videos.reset_at.isoformat() if videos.reset_at else None,
        }

    return CreditsResponse(
        subscription_tier=info.subscription_tier,
        subscription_status=info.subscription_status,
        credits_remaining=info.credits_remaining,
        credits_total=info.credits_total,
        percentage_remaining=info.percentage_remaining,
        daily_quota=daily_quota,
    )


@router.post(
    "/admin/users/{user_id}/credits",
    response_model=AddCreditsResponse,
    dependencies=[Depends(require_admin)],
)
async def add_credits(
    user_id: str,
    request: AddCreditsRequest,
    session: AsyncSession = Depends(get_session),
):
    """Administrative credit top-up."""
    balance = await credits.add(session, user_id, request.amount)
    return AddCreditsResponse(user_id=user_id, credits_remaining=balance)
