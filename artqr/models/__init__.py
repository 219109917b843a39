# Database models package
from artqr.models.job import ArtisticJob

__all__ = [
    "ArtisticJob",
]
