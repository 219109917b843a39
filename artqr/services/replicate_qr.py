"""
Replicate QR Art Generation Service
Adapter around the ControlNet QR model hosted on Replicate.

One call per generate(); retries belong to the job queue, not to this client.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import replicate

from artqr.core.config import settings
from artqr.schemas.artistic import ArtisticRequest, GenerationOptions
from artqr.services.styles import get_style

logger = logging.getLogger(__name__)

CUSTOM_NEGATIVE_PROMPT = "low quality, blurry, distorted, ugly, bad"


def random_seed() -> int:
    return random.randint(0, 999999)


class GenerationError(Exception):
    """Generation failed. `retryable` marks transient failures (timeouts, upstream errors)."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


@dataclass(frozen=True)
class GeneratedImage:
    """Candidate image returned by the model."""
    image_url: str
    prompt: str
    negative_prompt: str
    style: str
    seed: int
    parameters: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())


class QRArtGenerator:
    """Generates artistic QR images through Replicate."""

    def __init__(
        self,
        client: Any = None,
        model: str = None,
        timeout: float = None,
        seed_factory: Callable[[], int] = random_seed,
    ):
        self.client = client or replicate.Client(api_token=settings.REPLICATE_API_TOKEN)
        self.model = model or settings.REPLICATE_MODEL
        self.timeout = timeout if timeout is not None else settings.GENERATION_TIMEOUT
        self.seed_factory = seed_factory

    def resolve_prompt(self, request: ArtisticRequest) -> tuple:
        """
        Resolve (prompt, negative_prompt, style label) for a request.

        Raises:
            GenerationError: unknown style and no custom prompt (not retryable)
        """
        if request.custom_prompt:
            return request.custom_prompt, CUSTOM_NEGATIVE_PROMPT, "custom"

        style = get_style(request.style) if request.style else None
        if style is None:
            raise GenerationError(f'Style "{request.style}" not found', retryable=False)
        return style["prompt"], style["negative_prompt"], request.style

    def build_input(self, request: ArtisticRequest, options: GenerationOptions, prompt: str, negative_prompt: str) -> Dict[str, Any]:
        """Full model input with defaults for every option the caller left unset."""
        resolved = options.resolved()
        return {
            "prompt": prompt,
            "negative_prompt": negative_prompt,
            "qr_code_content": request.url,
            "controlnet_conditioning_scale": resolved.conditioning_scale,
            "guidance_scale": resolved.guidance_scale,
            "num_inference_steps": resolved.steps,
            "seed": options.seed if options.seed is not None else self.seed_factory(),
            "width": resolved.width,
            "height": resolved.height,
        }

    async def generate(self, request: ArtisticRequest, options: Optional[GenerationOptions] = None) -> GeneratedImage:
        """
        Generate one candidate image.

        Args:
            request: Original request (url, style or custom prompt)
            options: Options for this attempt; defaults to request.options

        Raises:
            GenerationError: on unknown style, timeout or upstream failure
        """
        options = options or request.options
        prompt, negative_prompt, style_label = self.resolve_prompt(request)
        model_input = self.build_input(request, options, prompt, negative_prompt)

        logger.info(
            f"[Replicate] Generating artistic QR: style={style_label} "
            f"scale={model_input['controlnet_conditioning_scale']} seed={model_input['seed']}"
        )

        try:
            output = await asyncio.wait_for(
                self.client.async_run(self.model, input=model_input),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise GenerationError(f"Generation timed out after {self.timeout:.0f}s")
        except Exception as e:
            logger.error(f"[Replicate] Upstream error: {e}")
            raise GenerationError(f"Failed to generate artistic QR: {e}") from e

        image_url = self._first_url(output)
        if not image_url:
            raise GenerationError("Generation returned no image")

        logger.info(f"[Replicate] Generated: {image_url}")
        return GeneratedImage(
            image_url=image_url,
            prompt=prompt,
            negative_prompt=negative_prompt,
            style=style_label,
            seed=model_input["seed"],
            parameters=model_input,
        )

    @staticmethod
    def _first_url(output: Any) -> Optional[str]:
        """Replicate returns a URL, a FileOutput, or a list of either."""
        if isinstance(output, (list, tuple)):
            output = output[0] if output else None
        if output is None:
            return None
        return str(getattr(output, "url", output))


def estimate_cost(options: GenerationOptions) -> float:
    """Estimated Replicate cost in USD for one generation."""
    estimated_seconds = options.resolved().steps / settings.STEPS_PER_SECOND
    return settings.COST_PER_SECOND * estimated_seconds
