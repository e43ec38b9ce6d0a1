import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Union

from .errors import AllSlotsFailedError, GenerationCancelled, ValidationError
from .kie_client import KieClient
from .media import bytes_to_data_uri, image_to_data_uri
from .models import (
    GeneratedVideo, GenerationJob, ImageSlot, JobStatus, ProgressEvent, SlotStatus, VideoOptions, VideoStatus,
)
from .prompts import build_caption, build_diverse_image_prompts, build_image_prompt, build_video_prompt
from .settings import ARCHIVE_FAILED_JOBS, DIVERSE_IMAGE_COUNT
from .state_store import JobStateStore
from .vision import ImageAnalyzer

logger = logging.getLogger(__name__)

ImageInput = Union[str, bytes, Path]

_BUSY_STATES = (JobStatus.ANALYZING, JobStatus.GENERATING_IMAGE, JobStatus.GENERATING_VIDEOS)


class ProgressListener(Protocol):
    def on_progress(self, event: ProgressEvent) -> None:
        ...

    def on_job_updated(self, job: GenerationJob) -> None:
        ...


class LoggingProgressListener:
    def on_progress(self, event: ProgressEvent) -> None:
        detail = event.url or event.error or ""
        logger.info(f"{event.stage} {event.index + 1}/{event.total}: {event.status.value} {detail}".rstrip())

    def on_job_updated(self, job: GenerationJob) -> None:
        logger.debug(f"Job {job.id} is {job.status.value}")


class GenerationOrchestrator:
    """Drives one job from photo analysis through image and video fan-outs.

    Image and video generation are separate calls: after ``generate_images``
    the job waits in ``image-ready`` until the user selects images and asks
    for videos. Every remote call is awaited before the next one starts, so
    slot updates arrive strictly in slot order.
    """

    def __init__(
        self,
        store: JobStateStore,
        analyzer: ImageAnalyzer,
        kie: KieClient,
        listener: Optional[ProgressListener] = None,
        image_count: int = DIVERSE_IMAGE_COUNT,
        rng: Optional[random.Random] = None,
        archive_failed_jobs: bool = ARCHIVE_FAILED_JOBS,
    ):
        self.store = store
        self.analyzer = analyzer
        self.kie = kie
        self.listener = listener or LoggingProgressListener()
        self.image_count = image_count
        self.rng = rng or random.Random()
        self.archive_failed_jobs = archive_failed_jobs
        self._cancel_requested = False

    def cancel(self) -> None:
        """Stop the running fan-out before its next slot starts."""
        logger.info("Cancellation requested")
        self._cancel_requested = True

    def _publish(self, job: GenerationJob) -> None:
        self.store.set_current_job(job)
        self.listener.on_job_updated(job)

    def _emit(self, stage: str, index: int, total: int, status: SlotStatus, url: Optional[str] = None, error: Optional[str] = None) -> None:
        self.listener.on_progress(
            ProgressEvent(stage=stage, index=index, total=total, status=status, url=url, error=error)
        )

    async def _fail(self, job: GenerationJob, message: str) -> None:
        logger.error(f"Job {job.id} failed: {message}")
        job.status = JobStatus.FAILED
        job.error = message
        self._publish(job)
        if self.archive_failed_jobs:
            await self.store.add_job_to_history(job)

    def _api_key(self) -> str:
        keys = self.store.api_keys
        if not keys or not keys.kie:
            raise ValidationError("API keys required: please configure your Kie.ai API key in settings")
        return keys.kie

    def _require_job(self) -> GenerationJob:
        job = self.store.current_job
        if job is None:
            raise ValidationError("No active job; upload an image and generate images first")
        return job

    @staticmethod
    def _encode_upload(image: ImageInput) -> str:
        if isinstance(image, bytes):
            return bytes_to_data_uri(image)
        if isinstance(image, str) and image.startswith("data:"):
            return image
        return image_to_data_uri(str(image))

    async def generate_images(self, image: Optional[ImageInput], count: Optional[int] = None) -> GenerationJob:
        api_key = self._api_key()
        if not image:
            raise ValidationError("Please upload an image first")
        count = self.image_count if count is None else count
        if count < 1:
            raise ValidationError("At least one image must be requested")
        image_data = self._encode_upload(image)

        self._cancel_requested = False
        job = GenerationJob(original_image=image_data, status=JobStatus.ANALYZING)
        logger.info(f"Starting job {job.id}: analyzing image")
        self._publish(job)

        try:
            analysis = await self.analyzer.analyze(image_data)
        except Exception as e:
            await self._fail(job, str(e))
            raise

        job.image_analysis = analysis
        job.image_prompt = build_image_prompt(analysis)
        prompts = build_diverse_image_prompts(job.image_prompt, count, analysis)
        job.image_slots = [ImageSlot(index=i, prompt=p) for i, p in enumerate(prompts)]
        job.status = JobStatus.GENERATING_IMAGE
        logger.info(f"Job {job.id}: generating {len(prompts)} images")
        self._publish(job)

        failures = []
        total = len(job.image_slots)
        for slot in job.image_slots:
            if self._cancel_requested:
                slot.status = SlotStatus.FAILED
                slot.error = "Cancelled"
                failures.append((slot.index, slot.error))
                self._emit("image", slot.index, total, SlotStatus.FAILED, error=slot.error)
                continue

            self._emit("image", slot.index, total, SlotStatus.LOADING)
            try:
                url = await self.kie.generate_image(slot.prompt, api_key)
            except Exception as e:
                # One bad slot must not take the others down
                logger.warning(f"Job {job.id}: image {slot.index + 1} failed: {e}")
                slot.status = SlotStatus.FAILED
                slot.error = str(e)
                failures.append((slot.index, slot.error))
                self._emit("image", slot.index, total, SlotStatus.FAILED, error=slot.error)
                self._publish(job)
                continue

            slot.status = SlotStatus.COMPLETED
            slot.url = url
            job.regenerated_image_urls.append(url)
            self._emit("image", slot.index, total, SlotStatus.COMPLETED, url=url)
            self._publish(job)

        if not job.regenerated_image_urls:
            error = AllSlotsFailedError(failures)
            await self._fail(job, str(error))
            raise error

        job.video_prompt = build_video_prompt(analysis, self.rng)
        job.status = JobStatus.IMAGE_READY
        logger.info(f"Job {job.id}: {len(job.regenerated_image_urls)}/{total} images ready")
        self._publish(job)
        return job

    def select_images(self, urls: Iterable[str]) -> List[str]:
        job = self._require_job()
        if job.status in _BUSY_STATES:
            raise ValidationError("Cannot change the selection while generation is running")
        chosen = set(urls)
        unknown = chosen.difference(job.regenerated_image_urls)
        if unknown:
            raise ValidationError(f"Unknown image URL: {sorted(unknown)[0]}")
        job.selected_image_urls = [u for u in job.regenerated_image_urls if u in chosen]
        self._publish(job)
        return job.selected_image_urls

    def toggle_image_selection(self, url: str) -> List[str]:
        job = self._require_job()
        selected = set(job.selected_image_urls)
        if url in selected:
            selected.remove(url)
        else:
            selected.add(url)
        return self.select_images(selected)

    async def generate_videos(self, options: Optional[VideoOptions] = None) -> GenerationJob:
        job = self._require_job()
        api_key = self._api_key()
        if job.status in _BUSY_STATES:
            raise ValidationError("Generation is already running for this job")
        if not job.selected_image_urls:
            raise ValidationError("Please select at least one image to animate")
        if not job.video_prompt:
            raise ValidationError("Video prompt is missing; generate images first")
        if job.image_analysis is None:
            raise ValidationError("Image analysis is missing; generate images first")

        self._cancel_requested = False
        job.error = None
        job.videos = []
        job.status = JobStatus.GENERATING_VIDEOS
        selected = list(job.selected_image_urls)
        total = len(selected)
        logger.info(f"Job {job.id}: generating {total} videos")
        self._publish(job)

        caption = build_caption(job.image_analysis)
        for index, image_url in enumerate(selected):
            if self._cancel_requested:
                await self._fail(job, "Video generation cancelled")
                raise GenerationCancelled("Video generation cancelled")

            video = GeneratedVideo(
                prompt=job.video_prompt,
                caption=caption,
                source_image_url=image_url,
                status=VideoStatus.PROCESSING,
            )
            job.videos.append(video)
            self._emit("video", index, total, SlotStatus.LOADING)
            self._publish(job)
            try:
                video_url = await self.kie.generate_video(image_url, job.video_prompt, api_key, options)
            except Exception as e:
                video.status = VideoStatus.FAILED
                video.error = str(e)
                self._emit("video", index, total, SlotStatus.FAILED, error=str(e))
                await self._fail(job, str(e))
                raise

            video.video_url = video_url
            video.status = VideoStatus.COMPLETED
            self._emit("video", index, total, SlotStatus.COMPLETED, url=video_url)
            self._publish(job)

        job.status = JobStatus.COMPLETED
        logger.info(f"Job {job.id}: all {total} videos generated")
        self._publish(job)
        await self.store.add_job_to_history(job)
        return job
