"""
RQ Task Definitions
Defines the task functions executed by RQ workers.
"""

import logging
import asyncio
from typing import Any, Dict, Optional

from rq import get_current_job

from artqr.workers.base import NonRetryableError

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Helper to run async code in sync context (for RQ)."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            raise RuntimeError("event loop is closed")
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def _delivery_flags() -> tuple:
    """(redelivery, final_delivery) for the current RQ execution."""
    rq_job = get_current_job()
    if rq_job is None or rq_job.retries_left is None:
        return False, True

    total_retries = rq_job.meta.get("max_retries", rq_job.retries_left)
    redelivery = rq_job.retries_left < total_retries
    final_delivery = rq_job.retries_left <= 0
    return redelivery, final_delivery


def run_artistic_qr_task(job_id: str) -> Optional[Dict[str, Any]]:
    """
    RQ task for one artistic QR job.

    Transient failures propagate so RQ retries with backoff. Non-retryable
    failures are already recorded on the job row and end the RQ job cleanly.

    Args:
        job_id: Job row id

    Returns:
        Final result dict, a failure summary, or None if the job was not claimable
    """
    from artqr.core.container import get_container

    redelivery, final_delivery = _delivery_flags()
    logger.info(f"[Task] Starting artistic QR: {job_id} (redelivery={redelivery}, final={final_delivery})")

    worker = get_container().build_worker()
    try:
        return _run_async(worker.execute(job_id, redelivery=redelivery, final_delivery=final_delivery))
    except NonRetryableError as e:
        logger.error(f"[Task] Failed permanently: {job_id} - {e}")
        return {"job_id": job_id, "status": "failed", "error": str(e)}


__all__ = [
    "run_artistic_qr_task",
]
