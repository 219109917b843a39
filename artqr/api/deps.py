"""
API Dependencies
Common dependencies for FastAPI routes.
"""

from fastapi import Depends

from artqr.core.container import ServiceContainer, get_container
from artqr.services.gateway import ArtisticGateway


def get_services() -> ServiceContainer:
    """Process-wide service container."""
    return get_container()


def get_gateway(services: ServiceContainer = Depends(get_services)) -> ArtisticGateway:
    """Gateway wired to the container's cache and scheduler."""
    return ArtisticGateway(services.cache, services.scheduler, services.config.API_PREFIX)
