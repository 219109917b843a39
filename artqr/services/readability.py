"""
QR Readability Test Service
Tests artistic QR codes for scannability across simulated device cameras.

Each device tier blurs the candidate by a fixed radius, then OpenCV tries to
locate and decode the QR pattern. The share of tiers that decode is the score.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import httpx
import numpy as np
from PIL import Image, ImageFilter, UnidentifiedImageError

from artqr.core.config import settings
from artqr.schemas.artistic import GenerationOptions

logger = logging.getLogger(__name__)


class QualityCheckError(Exception):
    """Raised when a candidate cannot be loaded or evaluated in time."""


@dataclass(frozen=True)
class DeviceTier:
    device: str
    name: str
    blur: int  # Gaussian radius in pixels


DEVICE_TIERS = (
    DeviceTier("modern", "iPhone 12+ / Android 2020+", 0),
    DeviceTier("mid-range", "iPhone 8-11 / Android 2017-2019", 1),
    DeviceTier("old", "iPhone 6-7 / Android 2015-2016", 2),
)


@dataclass(frozen=True)
class ReadabilityReport:
    """Decode outcome for one device tier."""
    device: str
    device_name: str
    blur: int
    success: bool
    data: Optional[str]
    confidence: int

    def to_dict(self) -> dict:
        return {
            "device": self.device,
            "deviceName": self.device_name,
            "blur": self.blur,
            "success": self.success,
            "data": self.data,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class QualityScore:
    """Aggregate readability across all tiers."""
    score: int
    grade: str
    passed_tests: int
    total_tests: int
    results: List[ReadabilityReport]
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "grade": self.grade,
            "passedTests": self.passed_tests,
            "totalTests": self.total_tests,
            "results": [r.to_dict() for r in self.results],
            "recommendation": self.recommendation,
        }


def grade_for_score(score: int) -> str:
    if score >= 90:
        return "A"
    elif score >= 70:
        return "B"
    elif score >= 50:
        return "C"
    return "F"


def recommendation_for_score(score: int) -> str:
    if score >= 90:
        return "Excellent readability across all devices. Safe for printing."
    elif score >= 70:
        return "Good readability on modern devices. May have issues on older phones."
    elif score >= 50:
        return "Limited readability. Consider increasing conditioning scale or using simpler style."
    return "Poor readability. Regenerate with higher conditioning scale (1.7-2.0)."


def suggest_retry_parameters(
    current: GenerationOptions,
    score: int,
    threshold: int = None,
    scale_step: float = None,
    scale_max: float = None,
    guidance_floor: float = None,
) -> Optional[GenerationOptions]:
    """
    Options for a regeneration attempt, or None when the score is good enough.

    Raises the conditioning scale (stronger QR pattern) and the guidance
    floor; every other option is carried over. Returns a new value.
    """
    threshold = settings.QUALITY_RETRY_THRESHOLD if threshold is None else threshold
    if score >= threshold:
        return None

    scale_step = settings.CONDITIONING_SCALE_STEP if scale_step is None else scale_step
    scale_max = settings.CONDITIONING_SCALE_MAX if scale_max is None else scale_max
    guidance_floor = settings.GUIDANCE_SCALE_FLOOR if guidance_floor is None else guidance_floor

    effective = current.resolved()

    return current.model_copy(update={
        "conditioning_scale": round(min(scale_max, effective.conditioning_scale + scale_step), 4),
        "guidance_scale": max(effective.guidance_scale, guidance_floor),
    })


class ReadabilityTester:
    """Scores candidate images by decoding them under simulated blur."""

    def __init__(
        self,
        tiers=DEVICE_TIERS,
        timeout: float = None,
        http_timeout: float = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.tiers = tiers
        self.timeout = timeout if timeout is not None else settings.QUALITY_CHECK_TIMEOUT
        self.http_timeout = http_timeout if http_timeout is not None else settings.HTTP_TIMEOUT
        self.http_transport = http_transport
        self.detector = cv2.QRCodeDetector()

    def evaluate(self, image_bytes: bytes) -> QualityScore:
        """Run every device tier against the image (CPU bound)."""
        try:
            image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise QualityCheckError(f"Failed to load candidate image: {e}") from e

        results = [self._test_tier(image, tier) for tier in self.tiers]

        passed = sum(1 for r in results if r.success)
        score = round(passed / len(results) * 100)

        return QualityScore(
            score=score,
            grade=grade_for_score(score),
            passed_tests=passed,
            total_tests=len(results),
            results=results,
            recommendation=recommendation_for_score(score),
        )

    async def evaluate_url(self, image_url: str) -> QualityScore:
        """Download a candidate and evaluate it off the event loop, bounded by the timeout."""
        try:
            async with httpx.AsyncClient(transport=self.http_transport, timeout=self.http_timeout) as client:
                response = await client.get(image_url)
                response.raise_for_status()
                image_bytes = response.content
        except httpx.HTTPError as e:
            raise QualityCheckError(f"Failed to download candidate: {e}") from e

        try:
            return await asyncio.wait_for(asyncio.to_thread(self.evaluate, image_bytes), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise QualityCheckError(f"Readability test timed out after {self.timeout:.0f}s")

    def _test_tier(self, image: Image.Image, tier: DeviceTier) -> ReadabilityReport:
        degraded = image.filter(ImageFilter.GaussianBlur(tier.blur)) if tier.blur > 0 else image
        pixels = np.array(degraded.convert("L"))

        try:
            data, points, _ = self.detector.detectAndDecode(pixels)
        except cv2.error as e:
            logger.debug(f"[Readability] Decoder error on {tier.device}: {e}")
            data, points = "", None

        success = bool(data)
        return ReadabilityReport(
            device=tier.device,
            device_name=tier.name,
            blur=tier.blur,
            success=success,
            data=data or None,
            confidence=self._confidence(points) if success else 0,
        )

    @staticmethod
    def _confidence(points) -> int:
        # All four corners located means the finder patterns were found intact
        if points is not None and np.asarray(points).reshape(-1, 2).shape[0] >= 4:
            return 100
        return 50


__all__ = [
    "DEVICE_TIERS",
    "DeviceTier",
    "QualityCheckError",
    "QualityScore",
    "ReadabilityReport",
    "ReadabilityTester",
    "grade_for_score",
    "recommendation_for_score",
    "suggest_retry_parameters",
]
