"""Generation orchestrator: admission, job/scene bookkeeping and provider calls.

Coordinates one generation request end to end:
- Request validation and admission before any job exists
- Job and scene records created up front, scenes processed in order
- Per-scene failure isolation (a failed scene never aborts its siblings)
- Job status aggregated from outputs, charging only for completed units
- Concatenation recipe for multi-clip results

Entry points never raise; every outcome is a result object.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ugcpipe.config import settings
from ugcpipe.db.models import Avatar, GenerationJob, Product, ReferenceImage, Scene, User
from ugcpipe.errors import ErrorKind, GenerationError
from ugcpipe.orchestrator import store
from ugcpipe.orchestrator.state import JOB_PROCESSING, SCENE_FAILED, is_terminal
from ugcpipe.pipeline.concat import build_concat_script
from ugcpipe.pipeline.prompts import (
    build_avatar_video_prompt,
    build_photo_prompt,
    build_product_video_prompt,
)
from ugcpipe.providers.base import (
    ImageProvider,
    ImageRequest,
    ProviderResult,
    VideoProvider,
    VideoRequest,
)
from ugcpipe.providers.registry import get_image_provider, get_video_provider
from ugcpipe.schemas.requests import (
    AvatarVideoRequest,
    GenerationMode,
    PhotoRequest,
    ProductVideoRequest,
    parse_generation_request,
)
from ugcpipe.schemas.results import PhotoGenerationResult, SceneOutput, VideoGenerationResult
from ugcpipe.services import audit
from ugcpipe.services.admission import AdmissionStrategy, check_admission
from ugcpipe.services.references import find_owned, image_url, require_owned
from ugcpipe.services.storage import Storage, extension_for, get_storage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]
PromptBuilder = Callable[[Scene], str]
SceneCall = Callable[[str, Scene], Awaitable[ProviderResult]]


class SceneOutcome:
    """Result of driving one scene through its provider."""

    __slots__ = ("output", "error", "error_kind")

    def __init__(
        self,
        output: Optional[SceneOutput] = None,
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ):
        self.output = output
        self.error = error
        self.error_kind = error_kind


class Orchestrator:
    """Runs generation requests against one database session.

    Providers and storage are resolved lazily from the registry unless
    injected (tests pass in-process fakes).
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        video_provider_factory: Callable[[str], VideoProvider] = get_video_provider,
        image_provider: Optional[ImageProvider] = None,
        storage: Optional[Storage] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.session = session
        self.video_provider_factory = video_provider_factory
        self._image_provider = image_provider
        self._storage = storage
        self.progress_callback = progress_callback

    @property
    def image_provider(self) -> ImageProvider:
        if self._image_provider is None:
            self._image_provider = get_image_provider()
        return self._image_provider

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    def _notify(self, message: str) -> None:
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def generate(
        self,
        user_id: str,
        request: Union[dict, AvatarVideoRequest, PhotoRequest, ProductVideoRequest],
    ) -> Union[VideoGenerationResult, PhotoGenerationResult]:
        """Validate a raw or parsed request and run the matching mode."""
        if isinstance(request, dict):
            try:
                request = parse_generation_request(request)
            except GenerationError as e:
                logger.warning(f"Rejected request from {user_id}: {e.message}")
                if request.get("mode") == GenerationMode.PHOTO.value:
                    return PhotoGenerationResult.denied(e)
                return VideoGenerationResult.denied(e)

        if isinstance(request, PhotoRequest):
            return await self.generate_photo(user_id, request)
        if isinstance(request, AvatarVideoRequest):
            return await self.generate_avatar_video(user_id, request)
        return await self.generate_product_video(user_id, request)

    # ------------------------------------------------------------------
    # Photo (single unit)
    # ------------------------------------------------------------------

    async def generate_photo(self, user_id: str, request: PhotoRequest) -> PhotoGenerationResult:
        mode = GenerationMode.PHOTO
        try:
            if request.avatar_id is None and request.reference_image_id is None:
                raise GenerationError(
                    ErrorKind.VALIDATION, "Either avatarId or referenceImageId is required"
                )
            user, strategy, _ = await check_admission(self.session, user_id, mode, 1)
            avatar = None
            reference = None
            if request.avatar_id is not None:
                avatar = await require_owned(self.session, Avatar, user_id, request.avatar_id)
            if request.reference_image_id is not None:
                reference = await require_owned(
                    self.session, ReferenceImage, user_id, request.reference_image_id
                )
            product = await find_owned(self.session, Product, user_id, request.product_id)
        except GenerationError as e:
            logger.warning(f"Photo request from {user_id} denied: {e.kind.value}: {e.message}")
            return PhotoGenerationResult.denied(e)

        reference_urls = [image_url(item) for item in (avatar, reference, product) if item is not None]
        job: Optional[GenerationJob] = None
        try:
            job = await store.create_job(
                self.session,
                user_id=user_id,
                mode=mode.value,
                title=request.title,
                provider_tier=None,
                config={"aspect_ratio": request.aspect_ratio, "style": request.style},
            )
            (scene,) = await store.create_scenes(
                self.session,
                job,
                [
                    {
                        "scene_type": "photo",
                        "script": request.prompt,
                        "setting": request.style,
                        "avatar_id": avatar.id if avatar else None,
                        "product_id": product.id if product else None,
                        "reference_image_id": reference.id if reference else None,
                    }
                ],
            )

            def build_prompt(_scene: Scene) -> str:
                subject = request.prompt
                if avatar is not None and avatar.description:
                    subject = f"{subject}\n\nPerson: {avatar.description}"
                return build_photo_prompt(
                    subject,
                    style=request.style,
                    product_name=product.name if product else None,
                    aspect_ratio=request.aspect_ratio,
                )

            async def call_provider(prompt: str, _scene: Scene) -> ProviderResult:
                return await self.image_provider.generate(
                    ImageRequest(
                        prompt=prompt,
                        aspect_ratio=request.aspect_ratio,
                        reference_image_urls=reference_urls,
                    ),
                    on_progress=self._scene_progress(1),
                )

            outcome = await self._run_scene(job, scene, build_prompt, call_provider, "image")
            success = outcome.output is not None
            await store.finalize_job(self.session, job, int(success), 1, error=outcome.error)
            if success:
                await self._settle(strategy, user, mode, 1, None)
            await audit.log_generation(self.session, user_id, mode, job.id, success)

            if not success:
                return PhotoGenerationResult(
                    success=False,
                    job_id=job.id,
                    error=outcome.error,
                    error_kind=outcome.error_kind,
                )
            return PhotoGenerationResult(success=True, job_id=job.id, output_url=outcome.output.url)
        except Exception as e:
            logger.exception(f"Photo generation failed unexpectedly for {user_id}")
            job_id = await self._abort_job(job, str(e))
            return PhotoGenerationResult(
                success=False,
                job_id=job_id,
                error=str(e) or "Unknown error",
                error_kind=ErrorKind.UNKNOWN,
            )

    # ------------------------------------------------------------------
    # Multi-scene video
    # ------------------------------------------------------------------

    async def generate_avatar_video(
        self, user_id: str, request: AvatarVideoRequest
    ) -> VideoGenerationResult:
        mode = GenerationMode.AVATAR_VIDEO
        tier = request.provider_tier.value
        try:
            self._validate_scene_count(len(request.scenes))
            user, strategy, _ = await check_admission(
                self.session, user_id, mode, len(request.scenes), tier
            )
            avatar = await require_owned(self.session, Avatar, user_id, request.avatar_id)
            product = await find_owned(self.session, Product, user_id, request.product_id)
            reference = await find_owned(
                self.session, ReferenceImage, user_id, request.reference_image_id
            )
        except GenerationError as e:
            logger.warning(f"Avatar video request from {user_id} denied: {e.kind.value}: {e.message}")
            return VideoGenerationResult.denied(e)

        scene_inputs = [
            {
                "scene_type": s.type,
                "script": s.script,
                "action": s.action,
                "setting": s.setting,
                "duration": s.duration,
                "avatar_id": avatar.id,
                "product_id": product.id if product else None,
                "reference_image_id": reference.id if reference else None,
            }
            for s in request.scenes
        ]

        def build_prompt(scene: Scene) -> str:
            return build_avatar_video_prompt(
                scene.script or "",
                scene_type=scene.scene_type,
                avatar_description=avatar.description,
                product_description=_describe(product),
                action=scene.action,
                setting=scene.setting,
                aspect_ratio=request.aspect_ratio,
            )

        references = [image_url(item) for item in (avatar, product, reference) if item is not None]
        return await self._run_video_job(
            user_id, user, strategy, mode, request, scene_inputs, build_prompt, references
        )

    async def generate_product_video(
        self, user_id: str, request: ProductVideoRequest
    ) -> VideoGenerationResult:
        mode = GenerationMode.PRODUCT_VIDEO
        tier = request.provider_tier.value
        try:
            self._validate_scene_count(len(request.scenes))
            user, strategy, _ = await check_admission(
                self.session, user_id, mode, len(request.scenes), tier
            )
            product = await require_owned(self.session, Product, user_id, request.product_id)
            avatar = await find_owned(self.session, Avatar, user_id, request.avatar_id)
            reference = await find_owned(
                self.session, ReferenceImage, user_id, request.reference_image_id
            )
        except GenerationError as e:
            logger.warning(f"Product video request from {user_id} denied: {e.kind.value}: {e.message}")
            return VideoGenerationResult.denied(e)

        scene_inputs = [
            {
                "scene_type": s.action,
                "script": s.script,
                "action": s.action,
                "setting": s.setting,
                "duration": s.duration,
                "avatar_id": avatar.id if avatar else None,
                "product_id": product.id,
                "reference_image_id": reference.id if reference else None,
            }
            for s in request.scenes
        ]

        def build_prompt(scene: Scene) -> str:
            return build_product_video_prompt(
                product.name,
                scene.action,
                product_description=product.description,
                script=scene.script,
                include_presenter=avatar is not None,
                presenter_description=avatar.description if avatar else None,
                setting=scene.setting,
                aspect_ratio=request.aspect_ratio,
            )

        references = [image_url(item) for item in (product, avatar, reference) if item is not None]
        return await self._run_video_job(
            user_id, user, strategy, mode, request, scene_inputs, build_prompt, references
        )

    async def _run_video_job(
        self,
        user_id: str,
        user: User,
        strategy: AdmissionStrategy,
        mode: GenerationMode,
        request: Union[AvatarVideoRequest, ProductVideoRequest],
        scene_inputs: list[dict],
        build_prompt: PromptBuilder,
        reference_urls: list[str],
    ) -> VideoGenerationResult:
        tier = request.provider_tier.value
        job: Optional[GenerationJob] = None
        try:
            job = await store.create_job(
                self.session,
                user_id=user_id,
                mode=mode.value,
                title=request.title,
                provider_tier=tier,
                config={
                    "aspect_ratio": request.aspect_ratio,
                    "audio_enabled": request.audio_enabled,
                },
            )
            scenes = await store.create_scenes(self.session, job, scene_inputs)
            provider = self.video_provider_factory(tier)

            async def call_provider(prompt: str, scene: Scene) -> ProviderResult:
                return await provider.generate(
                    VideoRequest(
                        prompt=prompt,
                        duration=scene.duration,
                        aspect_ratio=request.aspect_ratio,
                        generate_audio=request.audio_enabled,
                        reference_image_urls=reference_urls,
                    ),
                    on_progress=self._scene_progress(scene.order_index),
                )

            job_start = time.monotonic()
            outputs: list[SceneOutput] = []
            failures: list[SceneOutcome] = []
            # One provider call in flight per job
            for scene in scenes:
                self._notify(f"Scene {scene.order_index}/{len(scenes)}: generating...")
                outcome = await self._run_scene(job, scene, build_prompt, call_provider, "video")
                if outcome.output is not None:
                    outputs.append(outcome.output)
                    self._notify(f"Scene {scene.order_index}: completed")
                else:
                    failures.append(outcome)
                    self._notify(f"Scene {scene.order_index}: failed ({outcome.error})")

            outputs.sort(key=lambda o: o.scene_index)
            await store.finalize_job(self.session, job, len(outputs), len(scenes))
            await self._settle(strategy, user, mode, len(outputs), tier)
            await audit.log_generation(
                self.session, user_id, mode, job.id, bool(outputs),
                scenes=len(scenes), completed=len(outputs),
            )
            logger.info(
                f"Job {job.id}: {len(outputs)}/{len(scenes)} scenes in "
                f"{time.monotonic() - job_start:.1f}s"
            )

            error_kind = None
            details = {}
            if failures:
                details["failed_scenes"] = [s.order_index for s in scenes if s.status == SCENE_FAILED]
                if not outputs:
                    error_kind = failures[0].error_kind
            return VideoGenerationResult(
                success=bool(outputs),
                job_id=job.id,
                outputs=outputs,
                concat_script=build_concat_script(o.scene_index for o in outputs),
                error=job.error_message,
                error_kind=error_kind,
                details=details,
            )
        except Exception as e:
            logger.exception(f"Video generation failed unexpectedly for {user_id}")
            job_id = await self._abort_job(job, str(e))
            return VideoGenerationResult(
                success=False,
                job_id=job_id,
                error=str(e) or "Unknown error",
                error_kind=ErrorKind.UNKNOWN,
            )

    # ------------------------------------------------------------------
    # Shared scene handling
    # ------------------------------------------------------------------

    async def _run_scene(
        self,
        job: GenerationJob,
        scene: Scene,
        build_prompt: PromptBuilder,
        call_provider: SceneCall,
        media_type: str,
    ) -> SceneOutcome:
        """Drive one scene to a terminal state; never raises."""
        index = scene.order_index
        try:
            scene.prompt = build_prompt(scene)
            await store.mark_scene_processing(self.session, scene)

            result = await call_provider(scene.prompt, scene)
            if not result.ok:
                error = result.error or "Provider failed without an error message"
                logger.warning(f"Job {job.id} scene {index} failed: {error}")
                await store.mark_scene_failed(self.session, scene, error)
                return SceneOutcome(error=error, error_kind=result.error_kind or ErrorKind.PROVIDER_FAILURE)

            url = await self._upload(job, scene, result)
            await store.record_scene_output(
                self.session,
                scene,
                media_type=media_type,
                url=url,
                duration_seconds=scene.duration if media_type == "video" else None,
                metadata={"format": result.mime_type, "size_bytes": len(result.media or b"")},
            )
            return SceneOutcome(output=SceneOutput(scene_index=index, url=url))
        except GenerationError as e:
            await self._fail_scene(job, scene, e.message)
            return SceneOutcome(error=e.message, error_kind=e.kind)
        except Exception as e:
            logger.exception(f"Job {job.id} scene {index} raised")
            await self._fail_scene(job, scene, str(e) or e.__class__.__name__, db_error=isinstance(e, SQLAlchemyError))
            return SceneOutcome(error=str(e) or e.__class__.__name__, error_kind=ErrorKind.UNKNOWN)

    async def _fail_scene(
        self,
        job: GenerationJob,
        scene: Scene,
        error: str,
        db_error: bool = False,
    ) -> None:
        if db_error:
            await self.session.rollback()
            await self.session.refresh(job)
            await self.session.refresh(scene)
        if is_terminal(scene.status):
            return
        await store.mark_scene_failed(self.session, scene, error)

    async def _upload(self, job: GenerationJob, scene: Scene, result: ProviderResult) -> str:
        default_ext = ".png" if (result.mime_type or "").startswith("image/") else ".mp4"
        filename = f"{job.id}/scene_{scene.order_index}{extension_for(result.mime_type, default_ext)}"
        try:
            uploaded = await self.storage.upload(result.media or b"", filename, settings.storage.bucket)
        except Exception as e:
            raise GenerationError(ErrorKind.UPLOAD_FAILURE, f"Upload failed: {e}") from e
        return uploaded.url

    def _scene_progress(self, scene_index: int):
        def on_progress(label: str, attempt: int) -> None:
            logger.debug(f"Scene {scene_index}: {label} (attempt {attempt})")
            if self.progress_callback:
                self.progress_callback(f"Scene {scene_index}: {label.lower()} (poll {attempt})")

        return on_progress

    async def _settle(
        self,
        strategy: AdmissionStrategy,
        user: User,
        mode: GenerationMode,
        completed: int,
        provider_tier: Optional[str],
    ) -> None:
        settlement = await strategy.settle(self.session, user, mode, completed, provider_tier)
        if not settlement.success:
            # Output is already delivered; the shortfall is logged for reconciliation
            logger.warning(f"Charging {user.id} for {completed} units failed: {settlement.error}")
        elif settlement.charged:
            logger.info(f"Charged {user.id} {settlement.charged} ({strategy.name}) for {completed} units")

    async def _abort_job(self, job: Optional[GenerationJob], error: str) -> Optional[uuid.UUID]:
        """Best-effort: close a job left in processing after an unexpected error."""
        if job is None:
            return None
        try:
            await self.session.rollback()
            await self.session.refresh(job)
            if job.status == JOB_PROCESSING:
                await store.finalize_job(self.session, job, 0, 0, error=error)
        except SQLAlchemyError:
            logger.exception(f"Could not mark job {job.id} failed")
        return job.id

    @staticmethod
    def _validate_scene_count(count: int) -> None:
        limit = settings.pipeline.max_scenes
        if not 1 <= count <= limit:
            raise GenerationError(
                ErrorKind.VALIDATION,
                f"Between 1 and {limit} scenes are required (got {count})",
            )


def _describe(product: Optional[Product]) -> Optional[str]:
    if product is None:
        return None
    if product.description:
        return f"{product.name}: {product.description}"
    return product.name


async def run_generation(
    session: AsyncSession,
    user_id: str,
    request: Union[dict, AvatarVideoRequest, PhotoRequest, ProductVideoRequest],
    progress_callback: Optional[ProgressCallback] = None,
) -> Union[VideoGenerationResult, PhotoGenerationResult]:
    """Run one generation request with the configured providers and storage."""
    orchestrator = Orchestrator(session, progress_callback=progress_callback)
    return await orchestrator.generate(user_id, request)
