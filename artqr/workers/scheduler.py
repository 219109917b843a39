"""
Job Scheduler
Enqueue and status polling for artistic QR jobs.

The job row is written before the queue push, so a returned job id can be
polled immediately even if no worker has picked it up yet.
"""

import logging
from typing import Any, Dict, Optional

from artqr.core.config import settings
from artqr.schemas.artistic import ArtisticRequest
from artqr.schemas.job import JobStatus
from artqr.services.jobs import JobRecord, JobRepository
from artqr.workers.queue import QueueManager

logger = logging.getLogger(__name__)


class QueueUnavailableError(Exception):
    """The queue broker rejected the job; nothing was enqueued."""


class JobScheduler:
    """Owns job creation, queue dispatch and status reads."""

    def __init__(self, jobs: JobRepository, queue: QueueManager, max_generation_attempts: int = None):
        self.jobs = jobs
        self.queue = queue
        self.max_generation_attempts = max_generation_attempts or settings.MAX_GENERATION_ATTEMPTS

    def find_in_flight(self, cache_key: str, quality_check: bool) -> Optional[JobRecord]:
        """Queued or running job for the same request and quality-check setting, if any."""
        return self.jobs.find_active(cache_key, quality_check)

    def enqueue(self, request: ArtisticRequest, cache_key: str) -> JobRecord:
        """
        Persist and dispatch a job.

        Raises:
            QueueUnavailableError: broker unreachable; the job row is removed
        """
        max_attempts = self.max_generation_attempts if request.quality_check else 1
        record = self.jobs.create(request, cache_key, max_attempts=max_attempts)

        try:
            self.queue.enqueue_artistic(record.id, request.priority)
        except Exception as e:
            logger.error(f"[Scheduler] Could not enqueue {record.id}: {e}")
            self.jobs.delete_queued(record.id)
            raise QueueUnavailableError(f"Job queue unavailable: {e}") from e

        logger.info(f"[Scheduler] Queued job {record.id} (cache key {cache_key})")
        return record

    def get_status(self, job_id: str) -> Dict[str, Any]:
        """Current job status as exposed to pollers."""
        record = self.jobs.get(job_id)

        if record is None:
            return {"status": "not_found"}

        if record.status == JobStatus.COMPLETED:
            return {"status": record.status.value, "result": record.result}

        if record.status == JobStatus.FAILED:
            return {"status": record.status.value, "error": record.error_message}

        return {"status": record.status.value, "progress": record.progress}
