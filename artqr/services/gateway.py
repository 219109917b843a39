"""
Artistic QR Gateway
Synchronous entry point: validate, answer from cache, or hand off to the scheduler.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from artqr.core.config import settings
from artqr.schemas.artistic import ArtisticRequest
from artqr.services.cache import CacheStore, generate_cache_key
from artqr.services.replicate_qr import estimate_cost
from artqr.services.styles import get_categories, list_styles

logger = logging.getLogger(__name__)


class GatewayValidationError(ValueError):
    """Request rejected before anything was queued."""


def is_absolute_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


class ArtisticGateway:
    """Request gateway for artistic QR generation."""

    def __init__(self, cache: CacheStore, scheduler, api_prefix: str = None):
        self.cache = cache
        self.scheduler = scheduler
        self.api_prefix = (api_prefix if api_prefix is not None else settings.API_PREFIX).rstrip("/")

    def validate(self, request: ArtisticRequest):
        if not request.url:
            raise GatewayValidationError("URL is required")
        if not is_absolute_url(request.url):
            raise GatewayValidationError("Invalid URL")
        # Unknown style keys are only detected at generation time
        if not request.style_or_prompt:
            raise GatewayValidationError("Either a style or a customPrompt is required")

    def submit(self, request: ArtisticRequest) -> Dict[str, Any]:
        """
        Return a cached result or queue a generation job.

        Raises:
            GatewayValidationError: malformed URL or missing style/prompt
            QueueUnavailableError: the job could not be queued
        """
        self.validate(request)

        cache_key = generate_cache_key(request)
        cached = self.cache.get(cache_key)
        if cached:
            return {"status": "completed", "cached": True, "result": cached}

        record = self.scheduler.find_in_flight(cache_key, request.quality_check)
        if record is not None:
            logger.info(f"[Gateway] Joining in-flight job {record.id} for {cache_key}")
        else:
            record = self.scheduler.enqueue(request, cache_key)

        return {
            "status": "queued",
            "jobId": record.id,
            "estimatedCost": f"${estimate_cost(request.options):.4f}",
            "estimatedTime": "8-15 seconds" if request.quality_check else "5-10 seconds",
            "qualityCheck": request.quality_check,
            "checkStatusUrl": f"{self.api_prefix}/artistic/{record.id}",
        }

    def get_status(self, job_id: str) -> Dict[str, Any]:
        return self.scheduler.get_status(job_id)

    @staticmethod
    def styles(category: Optional[str] = None) -> Dict[str, Any]:
        if category:
            return {"category": category, "styles": list_styles(category)}
        return {"styles": list_styles(), "categories": get_categories()}
