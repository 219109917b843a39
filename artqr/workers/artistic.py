"""
Artistic QR Worker
Runs one artistic QR job: generate, score, regenerate at most once, archive.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from artqr.core.config import settings
from artqr.schemas.artistic import ArtisticRequest, GenerationOptions
from artqr.services.cache import CacheStore
from artqr.services.jobs import JobRecord, JobRepository
from artqr.services.readability import (
    QualityCheckError,
    QualityScore,
    ReadabilityTester,
    suggest_retry_parameters,
)
from artqr.services.replicate_qr import GeneratedImage, GenerationError, QRArtGenerator
from artqr.services.storage import ArtifactStore, ArtifactStoreError
from artqr.workers.base import BaseWorker, NonRetryableError, RetryableError, WorkerException

logger = logging.getLogger(__name__)


class ArtisticQRWorker(BaseWorker):
    """Worker for artistic QR generation jobs."""

    TASK_NAME = "artistic_qr"

    def __init__(
        self,
        jobs: JobRepository,
        generator: QRArtGenerator,
        quality_gate: ReadabilityTester,
        artifacts: ArtifactStore,
        cache: CacheStore,
        retry_threshold: int = None,
    ):
        super().__init__(jobs)
        self.generator = generator
        self.quality_gate = quality_gate
        self.artifacts = artifacts
        self.cache = cache
        self.retry_threshold = settings.QUALITY_RETRY_THRESHOLD if retry_threshold is None else retry_threshold

    async def execute(self, job_id: str, redelivery: bool = False, final_delivery: bool = True) -> Optional[Dict[str, Any]]:
        """
        Execute the job end to end.

        Args:
            job_id: Job row id
            redelivery: True when the queue is retrying after a transient failure
            final_delivery: True when the queue will not retry this job again

        Returns:
            Final result, or None when the job could not be claimed

        Raises:
            RetryableError: transient failure; the job stays running unless this was the final delivery
            NonRetryableError: the job has been marked failed
        """
        record = self.jobs.claim(job_id, redelivery=redelivery)
        if record is None:
            logger.warning(f"[Task] Job {job_id} not claimable (unknown, finished, or owned by another worker)")
            return None

        self._log_start(self.TASK_NAME, job_id=job_id, delivery=record.deliveries)

        try:
            result = await self._run(record)
        except WorkerException as e:
            error = e
        except Exception as e:
            logger.exception(f"[Task] Unexpected error in {job_id}")
            error = RetryableError(f"Unexpected error: {e}")
        else:
            self._log_complete(self.TASK_NAME, f"Job {job_id} completed in {result['attempts']} attempt(s)")
            return result

        self._log_error(self.TASK_NAME, error)
        if not error.retryable or final_delivery:
            self.jobs.fail(job_id, str(error))
        raise error

    async def _run(self, record: JobRecord) -> Dict[str, Any]:
        try:
            request = ArtisticRequest.model_validate(record.request)
        except ValidationError as e:
            raise NonRetryableError(f"Invalid stored request: {e}")

        if record.attempts >= record.max_attempts:
            raise NonRetryableError(
                f"Attempt limit reached ({record.attempts}/{record.max_attempts}) without an accepted candidate"
            )

        options = request.options
        if record.current_options:
            options = GenerationOptions.model_validate(record.current_options)
            logger.info(f"[Task] {record.id} resuming at attempt {record.attempts + 1} with saved options")

        candidate, options, quality, attempts = await self.run_regeneration_loop(
            record.id, request, record.max_attempts, options
        )

        self._update_progress(record.id, 85, "Archiving artifact...")
        try:
            artifact_url = await self.artifacts.upload_from_url(
                candidate.image_url,
                {"url": request.url, "style": candidate.style, "prompt": candidate.prompt},
            )
        except ArtifactStoreError as e:
            raise NonRetryableError(str(e))

        result = {
            "imageUrl": artifact_url,
            "sourceImageUrl": candidate.image_url,
            "prompt": candidate.prompt,
            "url": request.url,
            "style": candidate.style,
            "seed": candidate.seed,
            "options": options.model_dump(mode="json", by_alias=True, exclude_none=True),
            "readability": quality.to_dict() if quality else None,
            "attempts": attempts,
            "timestamp": candidate.created_at,
        }

        self.cache.set(record.cache_key, result)
        self.jobs.complete(record.id, result)
        return result

    async def run_regeneration_loop(
        self,
        job_id: str,
        request: ArtisticRequest,
        max_attempts: int,
        options: Optional[GenerationOptions] = None,
    ) -> Tuple[GeneratedImage, GenerationOptions, Optional[QualityScore], int]:
        """
        Generate, score, and regenerate once with stronger QR conditioning if needed.

        Attempts run strictly one after another and are counted on the job
        row, so a redelivered job continues from where the last delivery
        stopped. An attempt that fails transiently is handed back before the
        error propagates; the redelivery repeats it with the same options.
        A poor final attempt is still accepted; its score travels with the result.
        """
        options = options or request.options

        while True:
            attempt = self.jobs.record_attempt(job_id)
            try:
                candidate, quality = await self._attempt(job_id, request, options, attempt)
            except NonRetryableError:
                raise
            except Exception:
                self.jobs.release_attempt(job_id)
                raise

            if quality is None or quality.score >= self.retry_threshold or attempt >= max_attempts:
                return candidate, options, quality, attempt

            adjusted = suggest_retry_parameters(options, quality.score, threshold=self.retry_threshold)
            if adjusted is None:
                return candidate, options, quality, attempt

            logger.info(
                f"[Task] {job_id} regenerating with conditioning scale {adjusted.conditioning_scale}"
            )
            self.jobs.save_options(job_id, adjusted.model_dump(mode="json", by_alias=True, exclude_none=True))
            options = adjusted

    async def _attempt(
        self,
        job_id: str,
        request: ArtisticRequest,
        options: GenerationOptions,
        attempt: int,
    ) -> Tuple[GeneratedImage, Optional[QualityScore]]:
        self._update_progress(job_id, 20 if attempt == 1 else 50, f"Generating (attempt {attempt})...")
        candidate = await self._generate(request, options)

        if not request.quality_check:
            return candidate, None

        self._update_progress(job_id, 40 if attempt == 1 else 70, "Testing readability...")
        quality = await self._evaluate(candidate)
        self.jobs.add_report(job_id, {"attempt": attempt, **quality.to_dict()})
        logger.info(f"[Task] {job_id} readability {quality.score}/100 (grade {quality.grade}), attempt {attempt}")
        return candidate, quality

    async def _generate(self, request: ArtisticRequest, options: GenerationOptions) -> GeneratedImage:
        try:
            return await self.generator.generate(request, options)
        except GenerationError as e:
            if e.retryable:
                raise RetryableError(str(e))
            raise NonRetryableError(str(e))

    async def _evaluate(self, candidate: GeneratedImage) -> QualityScore:
        try:
            return await self.quality_gate.evaluate_url(candidate.image_url)
        except QualityCheckError as e:
            raise RetryableError(str(e))
