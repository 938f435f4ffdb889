"""SQLAlchemy 2.0 ORM models for UGC Pipeline."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Text, JSON, Integer, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    # Fetch server defaults (created_at) on INSERT so async code never lazy-loads them
    __mapper_args__ = {"eager_defaults": True}


class User(Base):
    """Account record: approval gate, credit balance and legacy daily quota.

    The id is issued by the external auth provider, so it is stored as text.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING | APPROVED | DENIED | SUSPENDED

    subscription_tier: Mapped[str] = mapped_column(String(20), default="free")  # free | trial | starter | pro | agency
    subscription_status: Mapped[str] = mapped_column(String(20), default="inactive")  # inactive | active | cancelled | past_due
    credits_remaining: Mapped[int] = mapped_column(Integer, default=0)
    credits_total: Mapped[int] = mapped_column(Integer, default=0)

    # Legacy free-tier quota
    daily_video_quota: Mapped[int] = mapped_column(Integer, default=50)
    daily_image_quota: Mapped[int] = mapped_column(Integer, default=200)
    videos_generated_today: Mapped[int] = mapped_column(Integer, default=0)
    images_generated_today: Mapped[int] = mapped_column(Integer, default=0)
    quota_reset_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=_utcnow
    )


class Avatar(Base):
    """A user's reusable AI persona (likeness reference)."""
    __tablename__ = "avatars"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_image_url: Mapped[str] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())


class Product(Base):
    """A product image used in demos."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())


class ReferenceImage(Base):
    """A user-uploaded reference image."""
    __tablename__ = "reference_images"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())


class GenerationJob(Base):
    """One user-initiated generation request."""
    __tablename__ = "generation_jobs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    mode: Mapped[str] = mapped_column(String(20))  # MODE_A (avatar video) | MODE_B (photo) | MODE_C (product video)
    status: Mapped[str] = mapped_column(String(20), index=True)  # processing | completed | failed
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    provider_tier: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # aspect_ratio, audio_enabled
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)


class Scene(Base):
    """One ordered unit of work within a job."""
    __tablename__ = "scenes"
    __table_args__ = (
        UniqueConstraint("job_id", "order_index", name="uq_scene_job_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("generation_jobs.id", ondelete="CASCADE"), index=True)
    order_index: Mapped[int] = mapped_column(Integer)  # 1-based
    scene_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # hook/demo/cta/custom or product action
    prompt: Mapped[str] = mapped_column(Text, default="")  # filled in when the scene starts
    script: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    setting: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=6)
    avatar_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("avatars.id", ondelete="SET NULL"), nullable=True)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    reference_image_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("reference_images.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | processing | completed | failed
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())


class OutputAsset(Base):
    """A persisted rendered artifact produced by a completed scene."""
    __tablename__ = "output_assets"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("generation_jobs.id", ondelete="CASCADE"), index=True)
    scene_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("scenes.id", ondelete="CASCADE"), unique=True)
    media_type: Mapped[str] = mapped_column(String(10))  # video | image
    url: Mapped[str] = mapped_column(String(500))
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)  # format, width, height
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())


class AuditLog(Base):
    """Activity record for generation attempts."""
    __tablename__ = "audit_log"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(50))  # GENERATE_IMAGE | GENERATE_VIDEO
    mode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    resource_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    resource_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
