# Services package - pipeline adapters and business logic
from artqr.services.cache import CacheStore, generate_cache_key
from artqr.services.gateway import ArtisticGateway, GatewayValidationError
from artqr.services.jobs import JobRepository, JobRecord
from artqr.services.readability import ReadabilityTester, suggest_retry_parameters
from artqr.services.replicate_qr import QRArtGenerator, GenerationError
from artqr.services.storage import ArtifactStore, ArtifactStoreError

__all__ = [
    "CacheStore",
    "generate_cache_key",
    "ArtisticGateway",
    "GatewayValidationError",
    "JobRepository",
    "JobRecord",
    "ReadabilityTester",
    "suggest_retry_parameters",
    "QRArtGenerator",
    "GenerationError",
    "ArtifactStore",
    "ArtifactStoreError",
]
