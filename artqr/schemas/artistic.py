"""
Artistic QR Schemas
Pydantic models for artistic QR generation requests.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from artqr.schemas.job import JobPriority

# Model defaults for options the caller leaves unset
DEFAULT_CONDITIONING_SCALE = 1.5
DEFAULT_GUIDANCE_SCALE = 7.5
DEFAULT_STEPS = 30
DEFAULT_SIZE = 768  # Native resolution for SD 1.5 ControlNet


class GenerationOptions(BaseModel):
    """Tunable generation parameters. Unset values fall back to model defaults."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    conditioning_scale: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    guidance_scale: Optional[float] = Field(default=None, ge=0.0, le=30.0)
    steps: Optional[int] = Field(default=None, ge=1, le=150)
    seed: Optional[int] = Field(default=None, ge=0)
    width: Optional[int] = Field(default=None, ge=256, le=1536)
    height: Optional[int] = Field(default=None, ge=256, le=1536)

    def resolved(self) -> "GenerationOptions":
        """
        Copy with model defaults filled in for every unset option.

        The seed stays unset: an omitted seed means a fresh random one per call.
        Explicit values, including 0.0, are kept as given.
        """
        defaults = {
            "conditioning_scale": DEFAULT_CONDITIONING_SCALE,
            "guidance_scale": DEFAULT_GUIDANCE_SCALE,
            "steps": DEFAULT_STEPS,
            "width": DEFAULT_SIZE,
            "height": DEFAULT_SIZE,
        }
        return self.model_copy(update={
            name: value for name, value in defaults.items() if getattr(self, name) is None
        })


class ArtisticRequest(BaseModel):
    """Schema for an artistic QR generation request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    url: Optional[str] = None
    style: Optional[str] = "sunset"
    custom_prompt: Optional[str] = None
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    quality_check: bool = True
    priority: JobPriority = JobPriority.NORMAL

    @field_validator("url", "style", "custom_prompt", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def style_or_prompt(self) -> Optional[str]:
        """Identity used for caching: the custom prompt wins over the style key."""
        return self.custom_prompt or self.style

    def to_payload(self) -> dict:
        """JSON-safe wire form, as persisted on the job row."""
        return self.model_dump(mode="json", by_alias=True)
