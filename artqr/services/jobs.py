"""
Job Repository
Durable job rows and the job state machine.

Status only moves forward: queued -> running -> completed | failed.
Terminal jobs are never reclaimed.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from artqr.core.database import SessionLocal
from artqr.models.job import ArtisticJob
from artqr.schemas.artistic import ArtisticRequest
from artqr.schemas.job import JobStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.RUNNING},
    JobStatus.RUNNING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class JobNotFoundError(Exception):
    pass


class InvalidTransitionError(Exception):
    pass


class AttemptLimitExceeded(Exception):
    pass


@dataclass
class JobRecord:
    """Detached snapshot of a job row."""
    id: str
    cache_key: str
    request: Dict[str, Any]
    quality_check: bool
    priority: str
    status: JobStatus
    progress: int = 0
    attempts: int = 0
    max_attempts: int = 2
    deliveries: int = 0
    reports: List[Dict[str, Any]] = field(default_factory=list)
    current_options: Optional[Dict[str, Any]] = None
    result: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobRepository:
    """SQL-backed job store shared by the gateway and the workers."""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    @contextmanager
    def _session(self):
        db = self.session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _to_record(job: ArtisticJob) -> JobRecord:
        return JobRecord(
            id=job.id,
            cache_key=job.cache_key,
            request=dict(job.request or {}),
            quality_check=bool(job.quality_check),
            priority=job.priority,
            status=JobStatus(job.status),
            progress=job.progress or 0,
            attempts=job.attempts or 0,
            max_attempts=job.max_attempts,
            deliveries=job.deliveries or 0,
            reports=list(job.reports or []),
            current_options=job.current_options,
            result=job.result,
            error_message=job.error_message,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )

    @staticmethod
    def _load(db, job_id: str) -> ArtisticJob:
        job = db.get(ArtisticJob, job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return job

    @staticmethod
    def _transition(job: ArtisticJob, target: JobStatus):
        current = JobStatus(job.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(f"Job {job.id}: {current.value} -> {target.value} not allowed")
        job.status = target.value

    def create(self, request: ArtisticRequest, cache_key: str, max_attempts: int) -> JobRecord:
        """Persist a new queued job."""
        job = ArtisticJob(
            id=f"aqr_{uuid.uuid4().hex[:12]}",
            cache_key=cache_key,
            request=request.to_payload(),
            quality_check=request.quality_check,
            priority=request.priority.value,
            status=JobStatus.QUEUED.value,
            progress=0,
            attempts=0,
            max_attempts=max_attempts,
            deliveries=0,
            reports=[],
        )
        with self._session() as db:
            db.add(job)
            db.commit()
            db.refresh(job)
            return self._to_record(job)

    def delete_queued(self, job_id: str) -> bool:
        """Remove a job that never reached a worker (enqueue failed)."""
        with self._session() as db:
            deleted = (
                db.query(ArtisticJob)
                .filter(ArtisticJob.id == job_id, ArtisticJob.status == JobStatus.QUEUED.value)
                .delete(synchronize_session=False)
            )
            db.commit()
            return bool(deleted)

    def get(self, job_id: str) -> Optional[JobRecord]:
        with self._session() as db:
            job = db.get(ArtisticJob, job_id)
            return self._to_record(job) if job else None

    def find_active(self, cache_key: str, quality_check: bool) -> Optional[JobRecord]:
        """Oldest queued or running job for a cache key with the same quality-check setting."""
        with self._session() as db:
            job = (
                db.query(ArtisticJob)
                .filter(
                    ArtisticJob.cache_key == cache_key,
                    ArtisticJob.quality_check == quality_check,
                    ArtisticJob.status.in_([JobStatus.QUEUED.value, JobStatus.RUNNING.value]),
                )
                .order_by(ArtisticJob.created_at.asc())
                .first()
            )
            return self._to_record(job) if job else None

    def claim(self, job_id: str, redelivery: bool = False) -> Optional[JobRecord]:
        """
        Atomically take ownership of a job for one execution.

        A queued job moves to running. A redelivery (queue retry after a
        transient failure) may re-enter a job that is already running; its
        attempt count and saved options carry over so the loop resumes.
        Returns None when the job is unknown, terminal, or already claimed.
        """
        now = datetime.utcnow()
        with self._session() as db:
            claimed = (
                db.query(ArtisticJob)
                .filter(ArtisticJob.id == job_id, ArtisticJob.status == JobStatus.QUEUED.value)
                .update(
                    {
                        ArtisticJob.status: JobStatus.RUNNING.value,
                        ArtisticJob.started_at: now,
                        ArtisticJob.deliveries: ArtisticJob.deliveries + 1,
                        ArtisticJob.progress: 10,
                        ArtisticJob.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            if not claimed and redelivery:
                claimed = (
                    db.query(ArtisticJob)
                    .filter(ArtisticJob.id == job_id, ArtisticJob.status == JobStatus.RUNNING.value)
                    .update(
                        {
                            ArtisticJob.deliveries: ArtisticJob.deliveries + 1,
                            ArtisticJob.progress: 10,
                            ArtisticJob.updated_at: now,
                        },
                        synchronize_session=False,
                    )
                )
            db.commit()

            if not claimed:
                return None
            return self._to_record(self._load(db, job_id))

    def record_attempt(self, job_id: str) -> int:
        """Count one generation call. Refuses to exceed max_attempts."""
        with self._session() as db:
            job = self._load(db, job_id)
            if job.status != JobStatus.RUNNING.value:
                raise InvalidTransitionError(f"Job {job_id} is {job.status}, cannot start an attempt")
            if job.attempts >= job.max_attempts:
                raise AttemptLimitExceeded(f"Job {job_id} already used {job.attempts}/{job.max_attempts} attempts")
            job.attempts += 1
            db.commit()
            return job.attempts

    def release_attempt(self, job_id: str) -> int:
        """Give back an attempt whose call failed transiently and produced no candidate."""
        with self._session() as db:
            job = self._load(db, job_id)
            if job.status == JobStatus.RUNNING.value and job.attempts > 0:
                job.attempts -= 1
                db.commit()
            return job.attempts

    def save_options(self, job_id: str, options: Dict[str, Any]):
        """Persist the options the next attempt must use."""
        with self._session() as db:
            job = self._load(db, job_id)
            job.current_options = options
            db.commit()

    def add_report(self, job_id: str, report: Dict[str, Any]):
        with self._session() as db:
            job = self._load(db, job_id)
            job.reports = [*(job.reports or []), report]
            db.commit()

    def set_progress(self, job_id: str, progress: int):
        with self._session() as db:
            job = self._load(db, job_id)
            if job.status == JobStatus.RUNNING.value:
                job.progress = max(0, min(100, int(progress)))
                db.commit()

    def complete(self, job_id: str, result: Dict[str, Any]) -> JobRecord:
        with self._session() as db:
            job = self._load(db, job_id)
            self._transition(job, JobStatus.COMPLETED)
            job.result = result
            job.progress = 100
            job.completed_at = datetime.utcnow()
            db.commit()
            return self._to_record(job)

    def fail(self, job_id: str, error: str) -> JobRecord:
        with self._session() as db:
            job = self._load(db, job_id)
            self._transition(job, JobStatus.FAILED)
            job.error_message = error
            job.completed_at = datetime.utcnow()
            db.commit()
            return self._to_record(job)
