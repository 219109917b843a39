"""
Base Worker Classes
Error taxonomy and progress/log plumbing shared by RQ workers.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from rq import get_current_job
from rq.job import Job

from artqr.services.jobs import JobRepository

logger = logging.getLogger(__name__)


class WorkerException(Exception):
    """Base exception for worker errors."""

    def __init__(self, message: str, retryable: bool = True, details: Optional[dict] = None):
        super().__init__(message)
        self.retryable = retryable
        self.details = details or {}


class NonRetryableError(WorkerException):
    """Error that should NOT be retried (e.g., unknown style, storage outage)."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, retryable=False, details=details)


class RetryableError(WorkerException):
    """Error that SHOULD be retried (e.g., generation timeout)."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, retryable=True, details=details)


class BaseWorker(ABC):
    """
    Abstract base class for job workers.

    Features:
    - Progress tracking on the job row (and RQ job meta when running under RQ)
    - Structured start/complete/error logging with timing
    """

    def __init__(self, jobs: JobRepository):
        self.jobs = jobs
        self.start_time: Optional[datetime] = None

    def _get_current_job(self) -> Optional[Job]:
        """Get the current RQ job context, if any."""
        try:
            return get_current_job()
        except Exception:
            return None

    def _update_progress(self, job_id: str, progress: int, message: str = ""):
        """
        Update job progress (0 to 100).

        Args:
            job_id: Job row id
            progress: Percent complete
            message: Optional status message
        """
        self.jobs.set_progress(job_id, progress)

        rq_job = self._get_current_job()
        if rq_job:
            rq_job.meta["progress"] = progress
            rq_job.meta["progress_message"] = message
            rq_job.meta["updated_at"] = datetime.utcnow().isoformat()
            rq_job.save_meta()

        logger.debug(f"Progress {job_id}: {progress}% - {message}")

    def _log_start(self, task_name: str, **context):
        self.start_time = datetime.utcnow()
        logger.info(f"[START] {task_name} | Context: {context}")

    def _duration(self) -> float:
        return (datetime.utcnow() - self.start_time).total_seconds() if self.start_time else 0

    def _log_complete(self, task_name: str, result_summary: str = ""):
        logger.info(f"[COMPLETE] {task_name} | Duration: {self._duration():.2f}s | {result_summary}")

    def _log_error(self, task_name: str, error: Exception):
        logger.error(f"[ERROR] {task_name} | Duration: {self._duration():.2f}s | Error: {error}")

    @abstractmethod
    async def execute(self, *args, **kwargs) -> Any:
        """
        Execute the worker task. Must be implemented by subclasses.

        Returns:
            Task result
        """
        pass


__all__ = [
    "WorkerException",
    "NonRetryableError",
    "RetryableError",
    "BaseWorker",
]
