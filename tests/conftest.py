"""Shared fixtures: in-memory job store and fakes for every external collaborator."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from artqr.core.config import settings
from artqr.core.container import ServiceContainer
from artqr.core.database import Base
from artqr.models import ArtisticJob  # noqa: F401
from artqr.services.cache import CacheStore
from artqr.services.jobs import JobRepository
from artqr.services.readability import QualityScore, grade_for_score, recommendation_for_score
from artqr.services.replicate_qr import QRArtGenerator
from artqr.services.storage import ArtifactStore, ArtifactStoreError


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeRedis:
    """Just enough of the redis client for CacheStore."""

    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False

    def get(self, key: str):
        if self.fail:
            raise RedisConnectionError("redis down")
        return self.store.get(key)

    def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        if self.fail:
            raise RedisConnectionError("redis down")
        if nx and key in self.store:
            return None
        self.store[key] = value.encode("utf-8")
        self.ttls[key] = ex
        return True

    def delete(self, *keys: str) -> int:
        if self.fail:
            raise RedisConnectionError("redis down")
        removed = [key for key in keys if self.store.pop(key, None) is not None]
        return len(removed)

    def scan_iter(self, match: str = "*", count: int | None = None):
        if self.fail:
            raise RedisConnectionError("redis down")
        prefix = match.rstrip("*")
        return iter([key for key in list(self.store) if key.startswith(prefix)])


class FakeReplicateClient:
    """Records every model call; fails the first `failures` calls and any call numbered in `fail_on`."""

    def __init__(self, failures: int = 0, delay: float = 0.0, fail_on: set[int] | None = None) -> None:
        self.calls: list[dict[str, Any]] = []
        self.failures = failures
        self.delay = delay
        self.fail_on = set(fail_on or ())

    async def async_run(self, model: str, input: dict[str, Any]):
        self.calls.append(dict(input))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("upstream 502")
        if len(self.calls) in self.fail_on:
            raise RuntimeError("upstream 502")
        return [f"https://replicate.delivery/pbxt/candidate-{len(self.calls)}.png"]


def make_quality(score: int) -> QualityScore:
    return QualityScore(
        score=score,
        grade=grade_for_score(score),
        passed_tests=round(score * 3 / 100),
        total_tests=3,
        results=[],
        recommendation=recommendation_for_score(score),
    )


class FakeQualityGate:
    """Returns scripted scores in order; the last one repeats."""

    def __init__(self, scores: list[int] | None = None) -> None:
        self.scores = list(scores or [100])
        self.evaluated: list[str] = []

    async def evaluate_url(self, image_url: str) -> QualityScore:
        self.evaluated.append(image_url)
        index = min(len(self.evaluated), len(self.scores)) - 1
        return make_quality(self.scores[index])


class FakeArtifactStore:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, dict[str, str]]] = []
        self.fail = False

    async def upload_from_url(self, image_url: str, metadata: dict[str, str]) -> str:
        if self.fail:
            raise ArtifactStoreError("bucket unavailable")
        self.uploads.append((image_url, metadata))
        return f"http://testserver/files/{ArtifactStore.artifact_path(image_url)}"


class FakeQueue:
    """Stands in for QueueManager; records dispatched job ids."""

    def __init__(self) -> None:
        self.enqueued: list[tuple[str, str]] = []
        self.fail = False

    def enqueue_artistic(self, job_id: str, priority) -> None:
        if self.fail:
            raise RedisConnectionError("broker down")
        self.enqueued.append((job_id, priority.value))

    def get_queue_stats(self) -> dict[str, dict[str, int]]:
        return {"artistic": {"queued": len(self.enqueued)}}


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def jobs(session_factory) -> JobRepository:
    return JobRepository(session_factory)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> CacheStore:
    return CacheStore(fake_redis, prefix="artistic-qr:", ttl=3600)


@pytest.fixture
def replicate_client() -> FakeReplicateClient:
    return FakeReplicateClient()


@pytest.fixture
def generator(replicate_client) -> QRArtGenerator:
    return QRArtGenerator(client=replicate_client, model="test/qr-model", timeout=5, seed_factory=lambda: 42)


@pytest.fixture
def quality_gate() -> FakeQualityGate:
    return FakeQualityGate()


@pytest.fixture
def artifacts() -> FakeArtifactStore:
    return FakeArtifactStore()


@pytest.fixture
def queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def services(jobs, cache, artifacts, generator, quality_gate, queue) -> ServiceContainer:
    return ServiceContainer(
        config=settings,
        jobs=jobs,
        cache=cache,
        artifacts=artifacts,
        generator=generator,
        quality_gate=quality_gate,
        queue=queue,
    )
