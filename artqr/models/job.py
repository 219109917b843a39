"""
Job Model
Database model for artistic QR generation jobs.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from artqr.core.database import Base


class ArtisticJob(Base):
    """Artistic QR generation job."""

    __tablename__ = "artistic_jobs"

    id = Column(String, primary_key=True)  # aqr_xxxx format
    cache_key = Column(String, nullable=False, index=True)

    # Request (camelCase JSON, as submitted)
    request = Column(JSON, nullable=False)
    quality_check = Column(Boolean, default=True)
    priority = Column(String, default="normal")

    # Status: queued, running, completed, failed
    status = Column(String, default="queued", index=True)
    progress = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)

    # Regeneration loop bookkeeping
    attempts = Column(Integer, default=0)
    max_attempts = Column(Integer, default=2)
    deliveries = Column(Integer, default=0)  # RQ executions incl. retries
    reports = Column(JSON, default=list)
    current_options = Column(JSON, nullable=True)  # options for the next attempt, survives redelivery

    # Result
    result = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
