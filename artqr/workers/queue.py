"""
Queue Management Utilities
RQ queue wrapper for artistic QR jobs.
"""

import logging
from typing import Dict, List
from datetime import datetime

from redis import Redis
from rq import Queue, Retry
from rq.job import Job

from artqr.core.config import settings
from artqr.core.redis import get_redis, Queues
from artqr.schemas.job import JobPriority

logger = logging.getLogger(__name__)


def backoff_intervals(max_deliveries: int, base_seconds: int) -> List[int]:
    """Exponential delays between deliveries: base, 2*base, 4*base, ..."""
    return [base_seconds * (2 ** i) for i in range(max(max_deliveries - 1, 0))]


class QueueManager:
    """
    Manages the RQ priority queues.

    Features:
    - One queue per priority level, workers drain them high to low
    - Infrastructure retry with exponential backoff
    - Queue statistics
    """

    def __init__(self, redis: Redis = None):
        self._queues: Dict[str, Queue] = {}
        self._redis = redis

    @property
    def redis(self) -> Redis:
        """Lazy Redis connection."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    def get_queue(self, queue_name: str = Queues.ARTISTIC) -> Queue:
        """Get or create a queue by name."""
        if queue_name not in self._queues:
            self._queues[queue_name] = Queue(
                name=queue_name,
                connection=self.redis,
                default_timeout=settings.JOB_TIMEOUT_ARTISTIC
            )
            logger.debug(f"Created queue: {queue_name}")

        return self._queues[queue_name]

    def _get_priority_queue(self, priority: JobPriority) -> Queue:
        return self.get_queue(Queues.for_priority(priority))

    def enqueue_artistic(self, job_id: str, priority: JobPriority = JobPriority.NORMAL) -> Job:
        """
        Enqueue an artistic QR job.

        The RQ job id equals the job row id, so a job can only sit in the
        queue once.

        Args:
            job_id: Job row id (already persisted)
            priority: Job priority level

        Returns:
            RQ Job instance
        """
        from artqr.workers.tasks import run_artistic_qr_task

        queue = self._get_priority_queue(priority)
        intervals = backoff_intervals(settings.JOB_MAX_DELIVERIES, settings.JOB_BACKOFF_SECONDS)

        job = queue.enqueue(
            run_artistic_qr_task,
            args=(job_id,),
            job_id=job_id,
            job_timeout=settings.JOB_TIMEOUT_ARTISTIC,
            retry=Retry(max=len(intervals), interval=intervals) if intervals else None,
            failure_ttl=60 * 60 * 24 * 7,
            meta={
                "type": "artistic_qr",
                "max_retries": len(intervals),
                "created_at": datetime.utcnow().isoformat(),
                "priority": priority.value
            }
        )

        logger.info(f"Enqueued artistic QR job: {job_id} (priority: {priority.value})")
        return job

    def get_queue_stats(self) -> Dict[str, Dict[str, int]]:
        """Statistics for every artistic queue."""
        stats = {}

        for name in Queues.ALL:
            try:
                queue = self.get_queue(name)
                stats[name] = {
                    "queued": len(queue),
                    "started": queue.started_job_registry.count,
                    "finished": queue.finished_job_registry.count,
                    "failed": queue.failed_job_registry.count,
                    "deferred": queue.deferred_job_registry.count,
                    "scheduled": queue.scheduled_job_registry.count
                }
            except Exception as e:
                stats[name] = {"error": str(e)}

        return stats


__all__ = [
    "QueueManager",
    "backoff_intervals",
]
