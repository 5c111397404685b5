"""
Batch orchestrator - runs install scripts for a batch of tools, one at a time.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import InvalidArgument, NotFound, ScriptFailure, SpawnError
from ..integrations.job_store import JobRecordStore
from ..models.installation import Job, JobStatus
from ..models.progress import ProgressEvent, ProgressStatus
from ..models.tool import InstallRequest
from .progress import ProgressCallback, ProgressHub, ProgressSubscription
from .registry import ActiveBatch, ActiveBatchRegistry
from .script_executor import ScriptExecutor


class BatchOrchestrator:
    """
    Orchestrates sequential installation of a batch of tools.

    Jobs within a batch run strictly in submission order; independent batches
    run concurrently on their own tasks. Cancellation is cooperative and only
    takes effect between jobs: a running script is never interrupted.
    """

    def __init__(self,
                 store: JobRecordStore,
                 executor: Optional[ScriptExecutor] = None,
                 scripts_dir: Optional[Path] = None,
                 registry: Optional[ActiveBatchRegistry] = None,
                 progress: Optional[ProgressHub] = None,
                 environment: Optional[Dict[str, str]] = None):
        """
        Initialize the orchestrator.

        Args:
            store: Job record store and tool catalog
            executor: Script executor, a default one if omitted
            scripts_dir: Base directory for relative script paths
            registry: Active batch registry, a private one if omitted
            progress: Progress hub, a private one if omitted
            environment: Environment overlay passed to every script
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.executor = executor or ScriptExecutor()
        self.scripts_dir = Path(scripts_dir) if scripts_dir else None
        self.registry = registry or ActiveBatchRegistry()
        self.progress = progress or ProgressHub()
        self.environment = dict(environment or {})
        self._tasks: Dict[int, asyncio.Task] = {}

    async def start_batch(self,
                          requests: Sequence[InstallRequest],
                          on_progress: Optional[ProgressCallback] = None) -> int:
        """
        Create pending jobs for a batch and start processing it in the background.

        Args:
            requests: Tools to install, in order
            on_progress: Optional callback for this batch's progress events

        Returns:
            Batch id, the id of the first job

        Raises:
            InvalidArgument: the request list is empty or malformed
        """
        requests = tuple(requests or ())
        if not requests:
            raise InvalidArgument("No tools specified")
        for request in requests:
            if not isinstance(request, InstallRequest):
                raise InvalidArgument(f"Not an install request: {request!r}")

        jobs = self.store.create_jobs([request.tool_id for request in requests], JobStatus.PENDING)
        batch = ActiveBatch(id=jobs[0].id, requests=requests, jobs=jobs)
        self.registry.register(batch)
        if on_progress:
            self.progress.add_listener(batch.id, on_progress)

        self.logger.info(f"Starting batch {batch.id} with {len(requests)} tool(s): "
                         f"{', '.join(r.name for r in requests)}")

        task = asyncio.create_task(self._process_batch(batch), name=f"batch-{batch.id}")
        self._tasks[batch.id] = task
        task.add_done_callback(lambda t: self._task_done(batch.id, t))
        return batch.id

    async def run_batch(self,
                        requests: Sequence[InstallRequest],
                        on_progress: Optional[ProgressCallback] = None) -> List[Job]:
        """Start a batch, wait for it to finish, and return its final jobs."""
        batch_id = await self.start_batch(requests, on_progress)
        job_ids = self.registry.get(batch_id).job_ids
        await asyncio.gather(self._tasks[batch_id], return_exceptions=True)
        return [self.get_job_status(job_id) for job_id in job_ids]

    def cancel_batch(self, batch_id: int) -> bool:
        """
        Request cancellation of an active batch.

        The flag is observed at the next job boundary; the running job, if
        any, still runs to completion.

        Returns:
            False if no active batch has this id
        """
        cancelled = self.registry.cancel(batch_id)
        if cancelled:
            self.logger.info(f"Cancellation requested for batch {batch_id}")
        return cancelled

    def get_job_status(self, job_id: int) -> Job:
        """
        Read a job from the store, joined with its tool.

        Raises:
            NotFound: no job has this id
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFound(f"Installation not found: {job_id}")
        job.tool = self.store.get_tool(job.tool_id)
        return job

    def list_active_batches(self) -> List[Job]:
        """Jobs that are pending or running, across all batches."""
        return self.store.list_active_jobs()

    def subscribe(self, batch_id: int) -> ProgressSubscription:
        """
        Subscribe to a batch's progress events.

        Subscribe right after ``start_batch`` returns, before yielding to the
        event loop, to see every event of the batch.
        """
        return self.progress.subscribe(batch_id)

    async def wait_closed(self) -> None:
        """Wait until every batch started by this orchestrator has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _task_done(self, batch_id: int, task: asyncio.Task) -> None:
        self._tasks.pop(batch_id, None)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Batch task {task.get_name()} crashed",
                              exc_info=task.exception())

    async def _process_batch(self, batch: ActiveBatch) -> None:
        """Run every job of a batch in order."""
        total = len(batch.jobs)
        finished = 0

        try:
            for index, (request, job) in enumerate(zip(batch.requests, batch.jobs)):
                if batch.cancelled:
                    self._cancel_remaining(batch, index, finished)
                    break

                try:
                    await self._run_job(batch, request, job, self._percent(finished, total))
                except Exception as e:
                    self.logger.error(f"Bookkeeping for {request.name} (job {job.id}) failed: {e}",
                                      exc_info=True)
                    self._abandon_job(batch, request, job, str(e) or type(e).__name__)
                finished += 1
        finally:
            self._settle_jobs(batch)
            self.registry.remove(batch.id)
            self.logger.info(f"Batch {batch.id} finished: " + ", ".join(
                f"{request.name}={job.status.value}"
                for request, job in zip(batch.requests, batch.jobs)
            ))
            self.progress.emit(ProgressEvent(
                batch_id=batch.id,
                status=ProgressStatus.COMPLETE,
                percent=100.0,
                message="Installation process completed"
            ))

    async def _run_job(self,
                       batch: ActiveBatch,
                       request: InstallRequest,
                       job: Job,
                       percent: float) -> None:
        """Run one job from pending to a terminal state."""
        total = len(batch.jobs)
        job.mark_running()
        self.store.update_job(job)
        self._emit(batch, request, ProgressStatus.RUNNING, percent,
                   message=f"Installing {request.display_name}...")

        def on_output(line: str) -> None:
            job.append_log(line + "\n")
            self._emit(batch, request, ProgressStatus.RUNNING, percent,
                       message=line, log_line=line)

        try:
            outcome = await self.executor.run(
                self._resolve_script(request.script_path),
                environment=self.environment,
                on_output=on_output
            )
            outcome.raise_for_status()
        except (SpawnError, ScriptFailure) as e:
            self._fail_job(batch, request, job, str(e), total)
            return
        except Exception as e:
            self.logger.error(f"Unexpected error installing {request.name}: {e}", exc_info=True)
            self._fail_job(batch, request, job, str(e) or type(e).__name__, total)
            return

        installed_at = datetime.utcnow()
        self.store.mark_tool_installed(request.tool_id, installed_at)
        job.mark_completed()
        self.store.update_job(job)
        self.store.log_activity("install", f"Successfully installed {request.display_name}")
        self.logger.info(f"Installed {request.name} (job {job.id})")

        done = self._finished_count(batch)
        self._emit(batch, request, ProgressStatus.COMPLETED, self._percent(done, total),
                   message=f"Installed {request.display_name}")

    def _fail_job(self,
                  batch: ActiveBatch,
                  request: InstallRequest,
                  job: Job,
                  error: str,
                  total: int) -> None:
        job.mark_failed(error)
        self.store.update_job(job)
        self.store.log_activity("install", f"Failed to install {request.display_name}",
                                {"error": error})
        self.logger.error(f"Failed to install {request.name} (job {job.id}): {error}")

        done = self._finished_count(batch)
        self._emit(batch, request, ProgressStatus.FAILED, self._percent(done, total),
                   message=f"Failed to install {request.display_name}: {error}",
                   error=error)

    def _abandon_job(self,
                     batch: ActiveBatch,
                     request: InstallRequest,
                     job: Job,
                     error: str) -> None:
        """Finish a job whose store bookkeeping raised, so the batch can go on."""
        if job.status == JobStatus.RUNNING:
            job.mark_failed(error)
        self._save_job(job)
        self._emit_final_status(batch, request, job)

    def _settle_jobs(self, batch: ActiveBatch) -> None:
        """Give every job of a batch leaving the registry a terminal state in the store."""
        for request, job in zip(batch.requests, batch.jobs):
            if job.is_terminal:
                if not self._is_saved(job):
                    self._save_job(job)
                continue

            if job.status == JobStatus.PENDING:
                job.mark_cancelled()
            else:
                job.mark_failed("Installation interrupted")
            self._save_job(job)
            self._emit_final_status(batch, request, job)

    def _emit_final_status(self, batch: ActiveBatch, request: InstallRequest, job: Job) -> None:
        if job.status == JobStatus.COMPLETED:
            message = f"Installed {request.display_name}"
        elif job.status == JobStatus.CANCELLED:
            message = f"Cancelled {request.display_name}"
        else:
            message = f"Failed to install {request.display_name}: {job.error_message}"
        self._emit(batch, request, ProgressStatus(job.status.value),
                   self._percent(self._finished_count(batch), len(batch.jobs)),
                   message=message, error=job.error_message)

    def _is_saved(self, job: Job) -> bool:
        try:
            stored = self.store.get_job(job.id)
        except Exception as e:
            self.logger.error(f"Could not read job {job.id}: {e}")
            return False
        return stored is not None and stored.status == job.status

    def _save_job(self, job: Job) -> None:
        try:
            self.store.update_job(job)
        except Exception as e:
            self.logger.error(f"Could not save job {job.id} as {job.status.value}: {e}",
                              exc_info=True)

    def _cancel_remaining(self, batch: ActiveBatch, start: int, finished: int) -> None:
        """Move every job from ``start`` on to cancelled without running it."""
        total = len(batch.jobs)
        self.logger.info(f"Batch {batch.id} cancelled, skipping {total - start} job(s)")

        for request, job in zip(batch.requests[start:], batch.jobs[start:]):
            job.mark_cancelled()
            self._save_job(job)
            finished += 1
            self._emit(batch, request, ProgressStatus.CANCELLED, self._percent(finished, total),
                       message=f"Cancelled {request.display_name}")

    def _emit(self,
              batch: ActiveBatch,
              request: InstallRequest,
              status: ProgressStatus,
              percent: float,
              message: Optional[str] = None,
              log_line: Optional[str] = None,
              error: Optional[str] = None) -> None:
        self.progress.emit(ProgressEvent(
            batch_id=batch.id,
            tool_name=request.name,
            status=status,
            percent=percent,
            message=message,
            log_line=log_line,
            error=error
        ))

    def _resolve_script(self, script_path: str) -> Path:
        path = Path(script_path)
        if not path.is_absolute() and self.scripts_dir:
            path = self.scripts_dir / path
        return path

    @staticmethod
    def _finished_count(batch: ActiveBatch) -> int:
        return sum(1 for job in batch.jobs if job.is_terminal)

    @staticmethod
    def _percent(finished: int, total: int) -> float:
        return round(finished / total * 100, 1) if total else 100.0
