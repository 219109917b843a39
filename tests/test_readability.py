import io

import httpx
import pytest
import qrcode
from PIL import Image

from artqr.schemas.artistic import GenerationOptions
from artqr.services.readability import (
    DEVICE_TIERS,
    QualityCheckError,
    ReadabilityTester,
    grade_for_score,
    recommendation_for_score,
    suggest_retry_parameters,
)

TARGET = "https://example.com/menu"


def _png(image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _clean_qr(data: str = TARGET) -> bytes:
    return _png(qrcode.make(data, box_size=10, border=4))


@pytest.mark.parametrize(
    "score, grade",
    [(95, "A"), (75, "B"), (55, "C"), (30, "F"), (90, "A"), (89, "B"), (70, "B"), (69, "C"), (50, "C"), (49, "F"), (0, "F")],
)
def test_grade_thresholds(score, grade):
    assert grade_for_score(score) == grade


def test_recommendation_follows_grade_bands():
    assert recommendation_for_score(100).startswith("Excellent")
    assert recommendation_for_score(75).startswith("Good")
    assert "conditioning scale" in recommendation_for_score(55)
    assert recommendation_for_score(10).startswith("Poor")


def test_no_retry_parameters_when_score_is_good_enough():
    assert suggest_retry_parameters(GenerationOptions(), 70, threshold=70) is None
    assert suggest_retry_parameters(GenerationOptions(), 100, threshold=70) is None


def test_retry_parameters_strengthen_conditioning():
    current = GenerationOptions(steps=40, seed=7)
    adjusted = suggest_retry_parameters(
        current, 60, threshold=70, scale_step=0.3, scale_max=2.0, guidance_floor=8.0
    )

    assert adjusted.conditioning_scale == pytest.approx(1.8)
    assert adjusted.guidance_scale == 8.0
    # Unrelated options carry over; input untouched
    assert adjusted.steps == 40
    assert adjusted.seed == 7
    assert current.conditioning_scale is None
    assert current.guidance_scale is None


def test_retry_parameters_respect_caps():
    current = GenerationOptions(conditioning_scale=1.9, guidance_scale=12.0)
    adjusted = suggest_retry_parameters(
        current, 0, threshold=70, scale_step=0.3, scale_max=2.0, guidance_floor=8.0
    )

    assert adjusted.conditioning_scale == 2.0
    assert adjusted.guidance_scale == 12.0


def test_retry_parameters_start_from_explicit_zero():
    adjusted = suggest_retry_parameters(
        GenerationOptions(conditioning_scale=0.0, guidance_scale=0.0),
        10, threshold=70, scale_step=0.3, scale_max=2.0, guidance_floor=8.0,
    )

    assert adjusted.conditioning_scale == pytest.approx(0.3)
    assert adjusted.guidance_scale == 8.0


def test_resolved_fills_defaults_but_keeps_explicit_values():
    resolved = GenerationOptions(conditioning_scale=0.0, steps=12).resolved()

    assert resolved.conditioning_scale == 0.0
    assert resolved.steps == 12
    assert resolved.guidance_scale == 7.5
    assert (resolved.width, resolved.height) == (768, 768)
    assert resolved.seed is None


def test_clean_code_decodes_on_modern_tier():
    tester = ReadabilityTester()
    quality = tester.evaluate(_clean_qr())

    modern = quality.results[0]
    assert modern.device == "modern"
    assert modern.success is True
    assert modern.data == TARGET
    assert modern.confidence > 0
    assert quality.total_tests == len(DEVICE_TIERS)
    assert quality.score >= 33


def test_blank_image_scores_zero():
    tester = ReadabilityTester()
    quality = tester.evaluate(_png(Image.new("RGB", (512, 512), "white")))

    assert quality.score == 0
    assert quality.grade == "F"
    assert quality.passed_tests == 0
    assert all(not r.success and r.data is None for r in quality.results)
    assert quality.to_dict()["results"][2]["deviceName"] == "iPhone 6-7 / Android 2015-2016"


def test_unreadable_bytes_raise():
    with pytest.raises(QualityCheckError):
        ReadabilityTester().evaluate(b"definitely not an image")


@pytest.mark.anyio
async def test_evaluate_url_downloads_candidate():
    payload = _clean_qr()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=payload)

    tester = ReadabilityTester(timeout=10, http_transport=httpx.MockTransport(handler))
    quality = await tester.evaluate_url("https://replicate.delivery/out.png")

    assert quality.results[0].data == TARGET


@pytest.mark.anyio
async def test_evaluate_url_download_failure_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    tester = ReadabilityTester(http_transport=httpx.MockTransport(handler))
    with pytest.raises(QualityCheckError):
        await tester.evaluate_url("https://replicate.delivery/gone.png")
