"""
Integration modules for persistence.
"""

from .job_store import JobRecordStore, InMemoryJobStore
from .sqlite_store import SqliteJobStore

__all__ = ["JobRecordStore", "InMemoryJobStore", "SqliteJobStore"]
