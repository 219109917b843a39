"""
Job Schemas
Job status and priority enums.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Job status enum."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobPriority(str, Enum):
    """Job priority levels."""
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
