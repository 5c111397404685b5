"""
Installation job and script outcome models.
"""

from enum import Enum
from typing import Optional, Dict, FrozenSet
from datetime import datetime
from pydantic import BaseModel, Field

from ..errors import InvalidTransition, ScriptFailure
from .tool import ToolRecord


class JobStatus(str, Enum):
    """Status of an installation job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
})

ACTIVE_STATUSES: FrozenSet[JobStatus] = frozenset({
    JobStatus.PENDING,
    JobStatus.RUNNING,
})

# Allowed next states for each state; terminal states have none.
TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.RUNNING, JobStatus.CANCELLED}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}


class Job(BaseModel):
    """One attempted installation of one tool within a batch."""
    id: int = Field(..., description="Job identifier assigned by the store")
    tool_id: int = Field(..., description="Tool this job installs")
    status: JobStatus = Field(default=JobStatus.PENDING, description="Current status")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    log: str = Field(default="", description="Accumulated script output")
    error_message: Optional[str] = Field(None, description="Error message if failed")
    tool: Optional[ToolRecord] = Field(None, description="Joined catalog entry")

    class Config:
        json_schema_extra = {
            "example": {
                "id": 42,
                "tool_id": 15,
                "status": "failed",
                "started_at": "2024-05-01T10:00:00",
                "completed_at": "2024-05-01T10:01:12",
                "log": "Reading package lists...\n",
                "error_message": "Script exited with code 100: E: Unable to locate package"
            }
        }

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _transition(self, status: JobStatus) -> None:
        if status not in TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Job {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def mark_running(self) -> None:
        """Move the job into the running state."""
        self._transition(JobStatus.RUNNING)
        self.started_at = datetime.utcnow()

    def append_log(self, text: str) -> None:
        """Append output captured while the job is running."""
        if self.status != JobStatus.RUNNING:
            raise InvalidTransition(f"Job {self.id} is {self.status.value}, log is closed")
        self.log += text

    def mark_completed(self) -> None:
        self._transition(JobStatus.COMPLETED)
        self.completed_at = datetime.utcnow()

    def mark_failed(self, error_message: str) -> None:
        self._transition(JobStatus.FAILED)
        self.error_message = error_message
        self.completed_at = datetime.utcnow()

    def mark_cancelled(self) -> None:
        self._transition(JobStatus.CANCELLED)
        self.completed_at = datetime.utcnow()


class ScriptOutcome(BaseModel):
    """Result of running one install script."""
    success: bool = Field(..., description="True when the script exited with status 0")
    exit_code: Optional[int] = Field(None, description="Exit status, None if killed on timeout")
    output: str = Field(default="", description="Combined stdout and stderr, verbatim")
    error_output: str = Field(default="", description="Captured stderr")
    timed_out: bool = Field(default=False, description="Script was killed on timeout")
    duration_seconds: Optional[float] = None

    def raise_for_status(self) -> None:
        """Raise ScriptFailure unless the script succeeded."""
        if self.success:
            return
        if self.timed_out:
            raise ScriptFailure(
                f"Script timed out after {self.duration_seconds or 0:.0f} seconds",
                error_output=self.error_output,
                timed_out=True
            )
        detail = self.error_output.strip()
        message = f"Script exited with code {self.exit_code}"
        if detail:
            message = f"{message}: {detail}"
        raise ScriptFailure(message, exit_code=self.exit_code, error_output=self.error_output)
