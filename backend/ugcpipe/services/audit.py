"""Audit trail of generation attempts.

Audit writes are best-effort: a failure is logged and rolled back, and the
generation result is returned regardless.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.db.models import AuditLog
from ugcpipe.schemas.requests import GenerationMode

logger = logging.getLogger(__name__)


async def log_event(
    session: AsyncSession,
    *,
    user_id: Optional[str],
    action: str,
    mode: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> None:
    try:
        session.add(
            AuditLog(
                user_id=user_id,
                action=action,
                mode=mode,
                resource_type=resource_type,
                resource_id=resource_id,
                metadata_json=metadata,
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Failed to log audit event {action}: {e}")


async def log_generation(
    session: AsyncSession,
    user_id: str,
    mode: GenerationMode,
    job_id: uuid.UUID,
    success: bool,
    **metadata: Any,
) -> None:
    action = "GENERATE_VIDEO" if mode.is_video else "GENERATE_IMAGE"
    await log_event(
        session,
        user_id=user_id,
        action=action,
        mode=mode.value,
        resource_type="JOB",
        resource_id=str(job_id),
        metadata={"success": success, **metadata},
    )
