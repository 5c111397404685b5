"""
Registry of batches that are currently being processed.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..models.installation import Job
from ..models.tool import InstallRequest


@dataclass
class ActiveBatch:
    """In-memory record of one batch, keyed by the id of its first job."""
    id: int
    requests: Tuple[InstallRequest, ...]
    jobs: List[Job]
    _cancelled: bool = field(default=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        # Monotonic: once set the flag is never cleared
        self._cancelled = True

    @property
    def job_ids(self) -> List[int]:
        return [job.id for job in self.jobs]


class ActiveBatchRegistry:
    """
    Thread-safe map of active batches.

    Mutated by the task processing each batch; read by cancel and status
    callers, which may run on other threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._batches: Dict[int, ActiveBatch] = {}

    def register(self, batch: ActiveBatch) -> None:
        with self._lock:
            if batch.id in self._batches:
                raise ValueError(f"Batch {batch.id} is already registered")
            self._batches[batch.id] = batch

    def get(self, batch_id: int) -> Optional[ActiveBatch]:
        with self._lock:
            return self._batches.get(batch_id)

    def remove(self, batch_id: int) -> Optional[ActiveBatch]:
        with self._lock:
            return self._batches.pop(batch_id, None)

    def cancel(self, batch_id: int) -> bool:
        """Flag a batch as cancelled; False if it is not active."""
        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                return False
            batch.cancel()
            return True

    def __contains__(self, batch_id: int) -> bool:
        with self._lock:
            return batch_id in self._batches

    def __len__(self) -> int:
        with self._lock:
            return len(self._batches)
