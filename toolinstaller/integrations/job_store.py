"""
Job record store interface and an in-memory implementation.

The store is the single source of truth for durable installation state and
also hosts the tool catalog, tool sets and activity log.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..models.installation import Job, JobStatus, ACTIVE_STATUSES
from ..models.tool import ToolRecord, ToolSet


class JobRecordStore(ABC):
    """
    Abstract store for installation jobs and the tool catalog.

    Implementations must be safe for concurrent access: independent batches
    write disjoint job rows from different tasks or threads.
    """

    # Installations

    @abstractmethod
    def create_jobs(self, tool_ids: Sequence[int],
                    status: JobStatus = JobStatus.PENDING) -> List[Job]:
        """
        Create one job row per tool, all or none.

        Args:
            tool_ids: Tools to install, in order
            status: Initial status of every job

        Returns:
            The created jobs, with ids assigned in ascending order
        """

    def create_job(self, tool_id: int, status: JobStatus = JobStatus.PENDING) -> Job:
        return self.create_jobs([tool_id], status)[0]

    @abstractmethod
    def update_job(self, job: Job) -> None:
        """Persist status, timestamps, log and error of an existing job."""

    @abstractmethod
    def get_job(self, job_id: int) -> Optional[Job]:
        """Return the job with this id, or None."""

    @abstractmethod
    def list_active_jobs(self) -> List[Job]:
        """Return jobs whose status is pending or running, oldest first."""

    # Catalog

    @abstractmethod
    def add_tool(self, name: str, display_name: str, script_path: str,
                 category: Optional[str] = None,
                 description: Optional[str] = None,
                 icon: Optional[str] = None) -> ToolRecord:
        """Add a tool to the catalog; an existing name is left untouched."""

    @abstractmethod
    def get_tool(self, tool_id: int) -> Optional[ToolRecord]:
        """Return the tool with this id, or None."""

    @abstractmethod
    def get_tool_by_name(self, name: str) -> Optional[ToolRecord]:
        """Return the tool with this name, or None."""

    @abstractmethod
    def list_tools(self) -> List[ToolRecord]:
        """Return all tools ordered by category and display name."""

    @abstractmethod
    def mark_tool_installed(self, tool_id: int, installed_at: Optional[datetime] = None) -> None:
        """Flag a tool as installed and record when."""

    @abstractmethod
    def add_tool_set(self, tool_set: ToolSet) -> None:
        """Add a tool set; an existing name is left untouched."""

    @abstractmethod
    def get_tool_set(self, name: str) -> Optional[ToolSet]:
        """Return the tool set with this name, or None."""

    @abstractmethod
    def list_tool_sets(self) -> List[ToolSet]:
        """Return all tool sets ordered by display name."""

    # Activity log

    @abstractmethod
    def log_activity(self, activity_type: str, message: str,
                     details: Optional[Dict[str, Any]] = None) -> None:
        """Append an entry to the activity log."""

    @abstractmethod
    def list_activity(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Return the most recent activity entries, newest first."""

    def list_installed_tools(self) -> List[ToolRecord]:
        return [tool for tool in self.list_tools() if tool.installed]

    def close(self) -> None:
        """Release any resources held by the store."""


class InMemoryJobStore(JobRecordStore):
    """Store kept entirely in memory, for tests and dry runs."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._jobs: Dict[int, Job] = {}
        self._tools: Dict[int, ToolRecord] = {}
        self._tool_sets: Dict[str, ToolSet] = {}
        self._activity: List[Dict[str, Any]] = []
        self._next_job_id = 1
        self._next_tool_id = 1

    def create_jobs(self, tool_ids: Sequence[int],
                    status: JobStatus = JobStatus.PENDING) -> List[Job]:
        with self._lock:
            jobs = [Job(id=self._next_job_id + offset, tool_id=tool_id, status=status)
                    for offset, tool_id in enumerate(tool_ids)]
            self._next_job_id += len(jobs)
            for job in jobs:
                self._jobs[job.id] = job
            return [job.model_copy() for job in jobs]

    def update_job(self, job: Job) -> None:
        with self._lock:
            if job.id not in self._jobs:
                raise KeyError(f"No job with id {job.id}")
            self._jobs[job.id] = job.model_copy(update={"tool": None})

    def get_job(self, job_id: int) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def list_active_jobs(self) -> List[Job]:
        with self._lock:
            return [job.model_copy() for job in self._jobs.values()
                    if job.status in ACTIVE_STATUSES]

    def add_tool(self, name: str, display_name: str, script_path: str,
                 category: Optional[str] = None,
                 description: Optional[str] = None,
                 icon: Optional[str] = None) -> ToolRecord:
        with self._lock:
            for tool in self._tools.values():
                if tool.name == name:
                    return tool.model_copy()
            tool = ToolRecord(
                id=self._next_tool_id,
                name=name,
                display_name=display_name,
                category=category,
                description=description,
                script_path=script_path,
                icon=icon
            )
            self._next_tool_id += 1
            self._tools[tool.id] = tool
            return tool.model_copy()

    def get_tool(self, tool_id: int) -> Optional[ToolRecord]:
        with self._lock:
            tool = self._tools.get(tool_id)
            return tool.model_copy() if tool else None

    def get_tool_by_name(self, name: str) -> Optional[ToolRecord]:
        with self._lock:
            for tool in self._tools.values():
                if tool.name == name:
                    return tool.model_copy()
            return None

    def list_tools(self) -> List[ToolRecord]:
        with self._lock:
            tools = [tool.model_copy() for tool in self._tools.values()]
        return sorted(tools, key=lambda t: (t.category or "", t.display_name))

    def mark_tool_installed(self, tool_id: int, installed_at: Optional[datetime] = None) -> None:
        with self._lock:
            tool = self._tools.get(tool_id)
            if tool is None:
                self.logger.warning(f"Cannot mark unknown tool {tool_id} installed")
                return
            tool.installed = True
            tool.install_date = installed_at or datetime.utcnow()

    def add_tool_set(self, tool_set: ToolSet) -> None:
        with self._lock:
            self._tool_sets.setdefault(tool_set.name, tool_set.model_copy(deep=True))

    def get_tool_set(self, name: str) -> Optional[ToolSet]:
        with self._lock:
            tool_set = self._tool_sets.get(name)
            return tool_set.model_copy(deep=True) if tool_set else None

    def list_tool_sets(self) -> List[ToolSet]:
        with self._lock:
            sets = [s.model_copy(deep=True) for s in self._tool_sets.values()]
        return sorted(sets, key=lambda s: s.display_name)

    def log_activity(self, activity_type: str, message: str,
                     details: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self._activity.append({
                "id": len(self._activity) + 1,
                "type": activity_type,
                "message": message,
                "details": copy.deepcopy(details),
                "created_at": datetime.utcnow()
            })

    def list_activity(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(entry) for entry in reversed(self._activity[-limit:])]
