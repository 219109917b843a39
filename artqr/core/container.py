"""
Service Container
Builds the pipeline's collaborators once per process and hands them out explicitly.
"""

from dataclasses import dataclass
from functools import lru_cache

from artqr.core.config import Settings, settings as default_settings
from artqr.core.database import SessionLocal
from artqr.core.redis import get_redis
from artqr.services.cache import CacheStore
from artqr.services.jobs import JobRepository
from artqr.services.readability import ReadabilityTester
from artqr.services.replicate_qr import QRArtGenerator
from artqr.services.storage import ArtifactStore
from artqr.workers.artistic import ArtisticQRWorker
from artqr.workers.queue import QueueManager
from artqr.workers.scheduler import JobScheduler


@dataclass
class ServiceContainer:
    config: Settings
    jobs: JobRepository
    cache: CacheStore
    artifacts: ArtifactStore
    generator: QRArtGenerator
    quality_gate: ReadabilityTester
    queue: QueueManager

    @property
    def scheduler(self) -> JobScheduler:
        return JobScheduler(self.jobs, self.queue, self.config.MAX_GENERATION_ATTEMPTS)

    def build_worker(self) -> ArtisticQRWorker:
        return ArtisticQRWorker(
            jobs=self.jobs,
            generator=self.generator,
            quality_gate=self.quality_gate,
            artifacts=self.artifacts,
            cache=self.cache,
            retry_threshold=self.config.QUALITY_RETRY_THRESHOLD,
        )


def build_container(config: Settings = None) -> ServiceContainer:
    """Wire real adapters from settings."""
    config = config or default_settings
    redis = get_redis()
    return ServiceContainer(
        config=config,
        jobs=JobRepository(SessionLocal),
        cache=CacheStore(redis, prefix=config.CACHE_PREFIX, ttl=config.CACHE_TTL_SECONDS),
        artifacts=ArtifactStore(config),
        generator=QRArtGenerator(model=config.REPLICATE_MODEL, timeout=config.GENERATION_TIMEOUT),
        quality_gate=ReadabilityTester(timeout=config.QUALITY_CHECK_TIMEOUT, http_timeout=config.HTTP_TIMEOUT),
        queue=QueueManager(redis),
    )


@lru_cache()
def get_container() -> ServiceContainer:
    """Process-wide container."""
    return build_container()
