"""
Data models for the tool installer.
"""

from .tool import ToolRecord, ToolSet, InstallRequest
from .installation import Job, JobStatus, ScriptOutcome, TERMINAL_STATUSES, ACTIVE_STATUSES
from .progress import ProgressEvent, ProgressStatus

__all__ = [
    "ToolRecord",
    "ToolSet",
    "InstallRequest",
    "Job",
    "JobStatus",
    "ScriptOutcome",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "ProgressEvent",
    "ProgressStatus"
]
