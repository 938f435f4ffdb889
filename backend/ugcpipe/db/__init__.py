"""
Database module for ugcpipe.

Provides async SQLAlchemy engine with SQLite WAL mode,
session management, and schema initialization.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from ugcpipe.db.engine import async_session, engine, get_session, shutdown
from ugcpipe.db.models import (
    Base,
    User,
    Avatar,
    Product,
    ReferenceImage,
    GenerationJob,
    Scene,
    OutputAsset,
    AuditLog,
)

logger = logging.getLogger(__name__)


async def init_database(bind: AsyncEngine | None = None):
    """Initialize database schema on first run."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


__all__ = [
    "Base",
    "User",
    "Avatar",
    "Product",
    "ReferenceImage",
    "GenerationJob",
    "Scene",
    "OutputAsset",
    "AuditLog",
    "engine",
    "async_session",
    "get_session",
    "shutdown",
    "init_database",
]
