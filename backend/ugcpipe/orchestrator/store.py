"""Job/Scene store: durable records of generation requests.

All writes go through these helpers so the monotonic status rules in
``ugcpipe.orchestrator.state`` hold, and an OutputAsset is only ever
written together with its scene's move to ``completed``.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.db.models import GenerationJob, OutputAsset, Scene
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.orchestrator.state import (
    JOB_PROCESSING,
    SCENE_COMPLETED,
    SCENE_FAILED,
    SCENE_PENDING,
    SCENE_PROCESSING,
    check_job_transition,
    check_scene_transition,
    final_job_status,
)
from ugcpipe.schemas.jobs import JobDetail, JobSummary, OutputView, SceneView

logger = logging.getLogger(__name__)

PARTIAL_FAILURE_MESSAGE = "Some scenes failed to generate"
TOTAL_FAILURE_MESSAGE = "All scenes failed to generate"


async def create_job(
    session: AsyncSession,
    *,
    user_id: str,
    mode: str,
    title: Optional[str],
    provider_tier: Optional[str],
    config: dict[str, Any],
) -> GenerationJob:
    job = GenerationJob(
        user_id=user_id,
        mode=mode,
        status=JOB_PROCESSING,
        title=title,
        provider_tier=provider_tier,
        config=config,
    )
    session.add(job)
    await session.commit()
    logger.info(f"Created job {job.id} ({mode}) for user {user_id}")
    return job


async def create_scenes(
    session: AsyncSession,
    job: GenerationJob,
    scene_inputs: list[dict[str, Any]],
) -> list[Scene]:
    """Create every scene row up front with order indexes 1..N.

    Each entry of ``scene_inputs`` holds Scene column values (prompt,
    script, action, setting, duration, reference ids).
    """
    scenes = []
    for index, values in enumerate(scene_inputs, start=1):
        scene = Scene(job_id=job.id, order_index=index, status=SCENE_PENDING, **values)
        session.add(scene)
        scenes.append(scene)
    await session.commit()
    return scenes


async def mark_scene_processing(session: AsyncSession, scene: Scene) -> None:
    check_scene_transition(scene.status, SCENE_PROCESSING)
    scene.status = SCENE_PROCESSING
    await session.commit()


async def mark_scene_failed(session: AsyncSession, scene: Scene, error: str) -> None:
    check_scene_transition(scene.status, SCENE_FAILED)
    scene.status = SCENE_FAILED
    scene.error_message = error
    await session.commit()


async def record_scene_output(
    session: AsyncSession,
    scene: Scene,
    *,
    media_type: str,
    url: str,
    duration_seconds: Optional[int] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> OutputAsset:
    """Persist the scene's output and mark it completed in one commit."""
    check_scene_transition(scene.status, SCENE_COMPLETED)
    asset = OutputAsset(
        job_id=scene.job_id,
        scene_id=scene.id,
        media_type=media_type,
        url=url,
        duration_seconds=duration_seconds,
        metadata_json=metadata,
    )
    session.add(asset)
    scene.status = SCENE_COMPLETED
    scene.error_message = None
    await session.commit()
    return asset


async def finalize_job(
    session: AsyncSession,
    job: GenerationJob,
    output_count: int,
    total_count: int,
    error: Optional[str] = None,
) -> GenerationJob:
    """Close the job: completed if any output exists, failed otherwise.

    ``error`` overrides the default summary message (photo mode records the
    provider's own error).
    """
    status = final_job_status(output_count)
    check_job_transition(job.status, status)
    job.status = status
    if output_count == 0:
        job.error_message = error or TOTAL_FAILURE_MESSAGE
    elif output_count < total_count:
        job.error_message = error or PARTIAL_FAILURE_MESSAGE
    else:
        job.error_message = None
    job.completed_at = datetime.now(timezone.utc).replace(tzinfo=None)
    await session.commit()
    logger.info(f"Job {job.id} {status}: {output_count}/{total_count} outputs")
    return job


async def get_job(session: AsyncSession, user_id: str, job_id: uuid.UUID) -> JobDetail:
    """Load a job with its ordered scenes and outputs, scoped to its owner.

    Raises:
        GenerationError: NOT_FOUND when the job is missing or owned by someone else.
    """
    job = await session.get(GenerationJob, job_id)
    if job is None or job.user_id != user_id:
        raise GenerationError(ErrorKind.NOT_FOUND, f"Job {job_id} not found")

    scenes = (
        await session.execute(
            select(Scene).where(Scene.job_id == job_id).order_by(Scene.order_index)
        )
    ).scalars().all()
    outputs = (
        await session.execute(
            select(OutputAsset)
            .join(Scene, OutputAsset.scene_id == Scene.id)
            .where(OutputAsset.job_id == job_id)
            .order_by(Scene.order_index)
        )
    ).scalars().all()

    return JobDetail(
        **JobSummary.model_validate(job).model_dump(),
        config=job.config,
        scenes=[SceneView.model_validate(s) for s in scenes],
        outputs=[OutputView.model_validate(o) for o in outputs],
    )


async def list_jobs(session: AsyncSession, user_id: str, limit: int = 20) -> list[JobSummary]:
    result = await session.execute(
        select(GenerationJob)
        .where(GenerationJob.user_id == user_id)
        .order_by(GenerationJob.created_at.desc())
        .limit(limit)
    )
    return [JobSummary.model_validate(job) for job in result.scalars().all()]

