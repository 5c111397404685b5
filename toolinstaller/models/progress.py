"""
Progress event model shared by the orchestrator and its transports.
"""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ProgressStatus(str, Enum):
    """Status carried by a progress event."""
    STARTED = "started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    COMPLETE = "complete"


class ProgressEvent(BaseModel):
    """A single progress update for one batch."""
    batch_id: int = Field(..., description="Main job id of the batch")
    tool_name: Optional[str] = Field(None, description="Tool being processed")
    status: ProgressStatus = Field(..., description="Job or batch status")
    percent: float = Field(default=0.0, description="Finished jobs / total jobs, as a percentage")
    message: Optional[str] = Field(None, description="Human-readable message")
    log_line: Optional[str] = Field(None, description="Raw line of script output")
    error: Optional[str] = Field(None, description="Error text for failed jobs")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_final(self) -> bool:
        return self.status == ProgressStatus.COMPLETE
