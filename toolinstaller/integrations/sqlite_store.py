"""
SQLite implementation of the job record store.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..models.installation import Job, JobStatus, ACTIVE_STATUSES
from ..models.tool import ToolRecord, ToolSet
from .job_store import JobRecordStore

SCHEMA = """
CREATE TABLE IF NOT EXISTS tools (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL,
    category TEXT,
    description TEXT,
    script_path TEXT NOT NULL,
    icon TEXT,
    installed INTEGER NOT NULL DEFAULT 0,
    install_date TEXT
);

CREATE TABLE IF NOT EXISTS installations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tool_id INTEGER NOT NULL REFERENCES tools(id),
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT,
    log TEXT NOT NULL DEFAULT '',
    error_message TEXT
);

CREATE INDEX IF NOT EXISTS idx_installations_status ON installations(status);

CREATE TABLE IF NOT EXISTS tool_sets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL,
    description TEXT,
    tools TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    message TEXT NOT NULL,
    details TEXT,
    created_at TEXT NOT NULL
);
"""


def _to_text(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteJobStore(JobRecordStore):
    """
    Job record store backed by a single SQLite database file.

    One connection is shared by all callers; every statement runs under a
    lock so concurrent batches never interleave writes.
    """

    def __init__(self, db_path: Union[str, Path]):
        """
        Initialize the store and create the schema if needed.

        Args:
            db_path: Database file path, or ":memory:"
        """
        self.logger = logging.getLogger(__name__)
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        with self._lock:
            self._conn.executescript(SCHEMA)
            self._conn.commit()
        self.logger.debug(f"Opened job store at {self.db_path}")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            self._conn.commit()
            return cursor

    def _fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    @staticmethod
    def _row_to_job(row: sqlite3.Row) -> Job:
        return Job(
            id=row["id"],
            tool_id=row["tool_id"],
            status=JobStatus(row["status"]),
            created_at=_from_text(row["created_at"]),
            started_at=_from_text(row["started_at"]),
            completed_at=_from_text(row["completed_at"]),
            log=row["log"] or "",
            error_message=row["error_message"]
        )

    @staticmethod
    def _row_to_tool(row: sqlite3.Row) -> ToolRecord:
        return ToolRecord(
            id=row["id"],
            name=row["name"],
            display_name=row["display_name"],
            category=row["category"],
            description=row["description"],
            script_path=row["script_path"],
            icon=row["icon"],
            installed=bool(row["installed"]),
            install_date=_from_text(row["install_date"])
        )

    @staticmethod
    def _row_to_tool_set(row: sqlite3.Row) -> ToolSet:
        return ToolSet(
            name=row["name"],
            display_name=row["display_name"],
            description=row["description"],
            tools=json.loads(row["tools"])
        )

    # Installations

    def create_jobs(self, tool_ids: Sequence[int],
                    status: JobStatus = JobStatus.PENDING) -> List[Job]:
        created_at = datetime.utcnow()
        jobs = []
        # One transaction: rolled back entirely if any insert fails
        with self._lock, self._conn:
            for tool_id in tool_ids:
                cursor = self._conn.execute(
                    "INSERT INTO installations (tool_id, status, created_at) VALUES (?, ?, ?)",
                    (tool_id, status.value, _to_text(created_at))
                )
                jobs.append(Job(id=cursor.lastrowid, tool_id=tool_id, status=status,
                                created_at=created_at))
        return jobs

    def update_job(self, job: Job) -> None:
        cursor = self._execute(
            """
            UPDATE installations
            SET status = ?, started_at = ?, completed_at = ?, log = ?, error_message = ?
            WHERE id = ?
            """,
            (job.status.value, _to_text(job.started_at), _to_text(job.completed_at),
             job.log, job.error_message, job.id)
        )
        if cursor.rowcount == 0:
            raise KeyError(f"No job with id {job.id}")

    def get_job(self, job_id: int) -> Optional[Job]:
        row = self._fetchone("SELECT * FROM installations WHERE id = ?", (job_id,))
        return self._row_to_job(row) if row else None

    def list_active_jobs(self) -> List[Job]:
        statuses = [status.value for status in ACTIVE_STATUSES]
        rows = self._fetchall(
            "SELECT * FROM installations WHERE status IN (?, ?) ORDER BY id",
            tuple(sorted(statuses))
        )
        return [self._row_to_job(row) for row in rows]

    # Catalog

    def add_tool(self, name: str, display_name: str, script_path: str,
                 category: Optional[str] = None,
                 description: Optional[str] = None,
                 icon: Optional[str] = None) -> ToolRecord:
        self._execute(
            """
            INSERT OR IGNORE INTO tools
            (name, display_name, category, description, script_path, icon)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (name, display_name, category, description, script_path, icon)
        )
        return self.get_tool_by_name(name)

    def get_tool(self, tool_id: int) -> Optional[ToolRecord]:
        row = self._fetchone("SELECT * FROM tools WHERE id = ?", (tool_id,))
        return self._row_to_tool(row) if row else None

    def get_tool_by_name(self, name: str) -> Optional[ToolRecord]:
        row = self._fetchone("SELECT * FROM tools WHERE name = ?", (name,))
        return self._row_to_tool(row) if row else None

    def list_tools(self) -> List[ToolRecord]:
        rows = self._fetchall("SELECT * FROM tools ORDER BY category, display_name")
        return [self._row_to_tool(row) for row in rows]

    def list_installed_tools(self) -> List[ToolRecord]:
        rows = self._fetchall(
            "SELECT * FROM tools WHERE installed = 1 ORDER BY category, display_name"
        )
        return [self._row_to_tool(row) for row in rows]

    def mark_tool_installed(self, tool_id: int, installed_at: Optional[datetime] = None) -> None:
        cursor = self._execute(
            "UPDATE tools SET installed = 1, install_date = ? WHERE id = ?",
            (_to_text(installed_at or datetime.utcnow()), tool_id)
        )
        if cursor.rowcount == 0:
            self.logger.warning(f"Cannot mark unknown tool {tool_id} installed")

    def add_tool_set(self, tool_set: ToolSet) -> None:
        self._execute(
            """
            INSERT OR IGNORE INTO tool_sets (name, display_name, description, tools)
            VALUES (?, ?, ?, ?)
            """,
            (tool_set.name, tool_set.display_name, tool_set.description,
             json.dumps(tool_set.tools))
        )

    def get_tool_set(self, name: str) -> Optional[ToolSet]:
        row = self._fetchone("SELECT * FROM tool_sets WHERE name = ?", (name,))
        return self._row_to_tool_set(row) if row else None

    def list_tool_sets(self) -> List[ToolSet]:
        rows = self._fetchall("SELECT * FROM tool_sets ORDER BY display_name")
        return [self._row_to_tool_set(row) for row in rows]

    # Activity log

    def log_activity(self, activity_type: str, message: str,
                     details: Optional[Dict[str, Any]] = None) -> None:
        self._execute(
            "INSERT INTO activity_log (type, message, details, created_at) VALUES (?, ?, ?, ?)",
            (activity_type, message, json.dumps(details, default=str),
             _to_text(datetime.utcnow()))
        )

    def list_activity(self, limit: int = 50) -> List[Dict[str, Any]]:
        rows = self._fetchall(
            "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,)
        )
        return [
            {
                "id": row["id"],
                "type": row["type"],
                "message": row["message"],
                "details": json.loads(row["details"]) if row["details"] else None,
                "created_at": _from_text(row["created_at"])
            }
            for row in rows
        ]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
