import pytest

from artqr.schemas.artistic import ArtisticRequest
from artqr.schemas.job import JobStatus
from artqr.services.jobs import AttemptLimitExceeded, InvalidTransitionError, JobNotFoundError


@pytest.fixture
def job(jobs):
    request = ArtisticRequest(url="https://example.com", style="forest")
    return jobs.create(request, cache_key="k1", max_attempts=2)


def test_create_persists_queued_job(jobs, job):
    assert job.id.startswith("aqr_") and len(job.id) == 16
    assert job.status == JobStatus.QUEUED
    assert job.progress == 0

    stored = jobs.get(job.id)
    assert stored.request["url"] == "https://example.com"
    assert stored.request["qualityCheck"] is True
    assert stored.max_attempts == 2


def test_claim_is_exclusive(jobs, job):
    claimed = jobs.claim(job.id)
    assert claimed.status == JobStatus.RUNNING
    assert claimed.deliveries == 1
    assert claimed.progress == 10

    assert jobs.claim(job.id) is None


def test_redelivery_reenters_running_job(jobs, job):
    jobs.claim(job.id)
    jobs.record_attempt(job.id)

    again = jobs.claim(job.id, redelivery=True)
    assert again.status == JobStatus.RUNNING
    assert again.deliveries == 2
    assert again.attempts == 1


def test_attempts_survive_redelivery(jobs, job):
    jobs.claim(job.id)
    jobs.record_attempt(job.id)
    jobs.save_options(job.id, {"conditioningScale": 1.8, "guidanceScale": 8.0})
    jobs.record_attempt(job.id)
    assert jobs.release_attempt(job.id) == 1

    again = jobs.claim(job.id, redelivery=True)
    assert again.attempts == 1
    assert again.current_options == {"conditioningScale": 1.8, "guidanceScale": 8.0}
    assert jobs.record_attempt(job.id) == 2
    with pytest.raises(AttemptLimitExceeded):
        jobs.record_attempt(job.id)


def test_release_attempt_never_goes_below_zero(jobs, job):
    assert jobs.release_attempt(job.id) == 0
    jobs.claim(job.id)
    assert jobs.release_attempt(job.id) == 0


def test_terminal_jobs_are_never_reclaimed(jobs, job):
    jobs.claim(job.id)
    jobs.complete(job.id, {"imageUrl": "x"})

    assert jobs.claim(job.id) is None
    assert jobs.claim(job.id, redelivery=True) is None
    assert jobs.get(job.id).status == JobStatus.COMPLETED


def test_status_only_moves_forward(jobs, job):
    with pytest.raises(InvalidTransitionError):
        jobs.complete(job.id, {})

    jobs.claim(job.id)
    jobs.fail(job.id, "boom")

    with pytest.raises(InvalidTransitionError):
        jobs.complete(job.id, {})
    with pytest.raises(InvalidTransitionError):
        jobs.fail(job.id, "again")

    failed = jobs.get(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error_message == "boom"
    assert failed.completed_at is not None


def test_attempts_are_bounded(jobs, job):
    with pytest.raises(InvalidTransitionError):
        jobs.record_attempt(job.id)

    jobs.claim(job.id)
    assert jobs.record_attempt(job.id) == 1
    assert jobs.record_attempt(job.id) == 2
    with pytest.raises(AttemptLimitExceeded):
        jobs.record_attempt(job.id)


def test_complete_sets_result_and_progress(jobs, job):
    jobs.claim(job.id)
    jobs.set_progress(job.id, 50)
    assert jobs.get(job.id).progress == 50

    done = jobs.complete(job.id, {"imageUrl": "http://x/a.png"})
    assert done.progress == 100
    assert done.result == {"imageUrl": "http://x/a.png"}

    jobs.set_progress(job.id, 20)
    assert jobs.get(job.id).progress == 100


def test_reports_accumulate(jobs, job):
    jobs.claim(job.id)
    jobs.add_report(job.id, {"attempt": 1, "score": 33})
    jobs.add_report(job.id, {"attempt": 2, "score": 100})
    assert [r["score"] for r in jobs.get(job.id).reports] == [33, 100]


def test_find_active_ignores_finished_jobs(jobs, job):
    assert jobs.find_active("k1", True).id == job.id

    jobs.claim(job.id)
    assert jobs.find_active("k1", True).id == job.id

    jobs.complete(job.id, {})
    assert jobs.find_active("k1", True) is None


def test_find_active_requires_same_quality_check(jobs, job):
    assert jobs.find_active("k1", False) is None

    unchecked = jobs.create(
        ArtisticRequest(url="https://example.com", style="forest", quality_check=False),
        cache_key="k1",
        max_attempts=1,
    )
    assert jobs.find_active("k1", False).id == unchecked.id
    assert jobs.find_active("k1", True).id == job.id


def test_delete_queued_only_removes_unclaimed(jobs, job):
    jobs.claim(job.id)
    assert jobs.delete_queued(job.id) is False

    other = jobs.create(ArtisticRequest(url="https://example.com"), cache_key="k2", max_attempts=1)
    assert jobs.delete_queued(other.id) is True
    assert jobs.get(other.id) is None


def test_unknown_job(jobs):
    assert jobs.get("aqr_missing") is None
    assert jobs.claim("aqr_missing") is None
    with pytest.raises(JobNotFoundError):
        jobs.fail("aqr_missing", "x")
