"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "ArtQR API"
    DEBUG: bool = False
    API_BASE_URL: str = "http://localhost:8000"  # Base URL for artifact links
    API_PREFIX: str = "/api/v1/qr"

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./artqr.db"

    # Redis (cache + RQ broker)
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_SOCKET_TIMEOUT: float = 5.0

    # Image Generation (Replicate ControlNet QR model)
    REPLICATE_API_TOKEN: str = ""
    REPLICATE_MODEL: str = (
        "monster-labs/control_v1p_sd15_qrcode_monster:"
        "4c0e63f6e8e5748e0ef3a284aff5ed22eb87bb7b64e23253de6badf67e555b98"
    )
    GENERATION_TIMEOUT: float = 120.0  # Hard per-call limit (seconds)

    # Quality gate
    QUALITY_CHECK_TIMEOUT: float = 30.0
    QUALITY_RETRY_THRESHOLD: int = 70
    MAX_GENERATION_ATTEMPTS: int = 2
    CONDITIONING_SCALE_STEP: float = 0.3
    CONDITIONING_SCALE_MAX: float = 2.0
    GUIDANCE_SCALE_FLOOR: float = 8.0

    # Cost model (Replicate GPU seconds)
    COST_PER_SECOND: float = 0.0023
    STEPS_PER_SECOND: float = 5.0

    # Cache
    CACHE_PREFIX: str = "artistic-qr:"
    CACHE_TTL_SECONDS: int = 60 * 60 * 24 * 7  # 7 days

    # Storage - S3 settings (optional)
    S3_BUCKET: str = ""
    S3_ENDPOINT: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_REGION: str = "us-east-1"

    # Local storage fallback
    LOCAL_STORAGE_PATH: str = "./uploads"
    USE_LOCAL_STORAGE: bool = True

    # Google Cloud Storage (for Cloud Run deployment)
    USE_GCS: bool = False
    GCS_BUCKET_ARTIFACTS: str = "qr-images-artistic"
    GCP_PROJECT_ID: str = ""

    HTTP_TIMEOUT: float = 60.0  # Image downloads

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Worker settings
    JOB_TIMEOUT_ARTISTIC: Optional[int] = None  # Derived from the per-call limits when unset
    JOB_TIMEOUT_MARGIN: int = 60
    JOB_MAX_DELIVERIES: int = 3  # Infrastructure attempts per job
    JOB_BACKOFF_SECONDS: int = 2  # Doubled after every failed delivery

    @field_validator('REPLICATE_API_TOKEN', 'S3_ACCESS_KEY', 'S3_SECRET_KEY', mode='before')
    @classmethod
    def strip_secrets(cls, v):
        """Strip whitespace and newlines from keys loaded from secrets."""
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode='after')
    def derive_job_timeout(self):
        """
        Size the RQ job timeout to the slowest possible run.

        Every attempt may spend the full generation limit, one candidate
        download and the quality check; the winner is downloaded once more
        for archiving.
        """
        if self.JOB_TIMEOUT_ARTISTIC is None:
            per_attempt = self.GENERATION_TIMEOUT + self.HTTP_TIMEOUT + self.QUALITY_CHECK_TIMEOUT
            worst_case = self.MAX_GENERATION_ATTEMPTS * per_attempt + self.HTTP_TIMEOUT
            self.JOB_TIMEOUT_ARTISTIC = int(worst_case) + self.JOB_TIMEOUT_MARGIN
        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
