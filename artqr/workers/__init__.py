# Workers package - async job processing with RQ

from artqr.workers.base import (
    WorkerException,
    NonRetryableError,
    RetryableError,
    BaseWorker
)
from artqr.workers.artistic import ArtisticQRWorker
from artqr.workers.queue import QueueManager, backoff_intervals
from artqr.workers.scheduler import JobScheduler, QueueUnavailableError
from artqr.workers.tasks import run_artistic_qr_task

__all__ = [
    # Base
    "WorkerException",
    "NonRetryableError",
    "RetryableError",
    "BaseWorker",
    # Pipeline
    "ArtisticQRWorker",
    "QueueManager",
    "backoff_intervals",
    "JobScheduler",
    "QueueUnavailableError",
    # Tasks
    "run_artistic_qr_task",
]
