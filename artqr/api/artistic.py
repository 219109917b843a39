"""
Artistic QR API Routes
POST /artistic - Generate artistic QR (async via queue)
GET /artistic/styles - List available styles
GET /artistic/stats - Cache and queue statistics
GET /artistic/{job_id} - Get job status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from artqr.api.deps import get_gateway, get_services
from artqr.core.container import ServiceContainer
from artqr.schemas.artistic import ArtisticRequest
from artqr.services.gateway import ArtisticGateway, GatewayValidationError
from artqr.workers.scheduler import QueueUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/artistic")
def create_artistic_qr(
    request: ArtisticRequest,
    gateway: ArtisticGateway = Depends(get_gateway),
):
    """
    Generate an artistic QR code.
    Returns a cached result immediately, otherwise a job handle to poll.
    """
    try:
        return gateway.submit(request)
    except GatewayValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except QueueUnavailableError as e:
        logger.error(f"Artistic QR enqueue failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/artistic/styles")
async def get_artistic_styles(category: Optional[str] = None):
    """List all available styles, optionally filtered by category."""
    return ArtisticGateway.styles(category)


@router.get("/artistic/stats")
def get_artistic_stats(services: ServiceContainer = Depends(get_services)):
    """Cache and queue statistics."""
    return {
        "cache": services.cache.stats(),
        "queues": services.queue.get_queue_stats(),
    }


@router.get("/artistic/{job_id}")
def get_artistic_job(
    job_id: str,
    gateway: ArtisticGateway = Depends(get_gateway),
):
    """Get job status and result. Unknown ids report `not_found`."""
    return gateway.get_status(job_id)
