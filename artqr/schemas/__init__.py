# Pydantic schemas package
from artqr.schemas.job import JobStatus, JobPriority
from artqr.schemas.artistic import GenerationOptions, ArtisticRequest

__all__ = [
    "JobStatus", "JobPriority",
    "GenerationOptions", "ArtisticRequest",
]
