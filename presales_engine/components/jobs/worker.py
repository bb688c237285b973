"""
Background worker for assessment jobs.

Runs `worker_count` loops over a shared JobQueue. Each loop processes one job
at a time through the pipeline orchestrator; a failure in one job is logged
and followed by a fixed delay, never stopping the loop.

On start every Pending and Processing job in the store is queued again. While
running, a sweep re-queues Processing jobs whose lease expired.
"""

import asyncio
from typing import List, Optional, Protocol

from presales_engine.components.base.config import Settings, get_settings
from presales_engine.components.base.logging import get_logger
from .queue import JobQueue
from .store import AssessmentJobStore

logger = get_logger("job_worker")


class JobProcessor(Protocol):
    async def run(self, job_id: int) -> None:
        ...


class AssessmentJobWorker:
    def __init__(
        self,
        queue: JobQueue,
        processor: JobProcessor,
        job_store: AssessmentJobStore,
        settings: Optional[Settings] = None,
    ):
        self.queue = queue
        self.processor = processor
        self.job_store = job_store
        self.settings = settings or get_settings()
        self._running = False
        self._tasks: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Recover unfinished jobs and start the worker loops."""
        if self._running:
            logger.warning("Job worker already running")
            return

        if self.settings.recover_jobs_on_startup:
            # nothing runs yet in this process, so every Processing job is orphaned
            await self.recover_jobs(lease_seconds=0)

        self._running = True
        worker_count = max(1, self.settings.worker_count)
        self._tasks = [
            asyncio.create_task(self._process_loop(index), name=f"assessment-worker-{index}")
            for index in range(worker_count)
        ]
        if self.settings.job_reap_interval_seconds > 0:
            self._tasks.append(asyncio.create_task(self._reap_loop(), name="assessment-lease-reaper"))
        logger.info("Job worker started", worker_count=worker_count)

    async def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Job worker stopped")

    async def recover_jobs(self, lease_seconds: Optional[int] = None) -> int:
        """Re-enqueue Pending jobs and Processing jobs whose lease expired.

        `lease_seconds` defaults to `job_lease_seconds`. Ids already queued or
        in flight in this process are left alone by the queue.
        """
        if lease_seconds is None:
            lease_seconds = self.settings.job_lease_seconds
        jobs = await self.job_store.list_recoverable(lease_seconds)
        recovered = sum(1 for job in jobs if self.queue.enqueue(job.id))
        if recovered:
            logger.info("Recovered unfinished jobs", count=recovered)
        return recovered

    async def _reap_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.settings.job_reap_interval_seconds)
            except asyncio.CancelledError:
                break
            try:
                await self.recover_jobs()
            except Exception as e:
                logger.error("Expired lease sweep failed", error=str(e), exc_info=True)

    async def _process_loop(self, index: int) -> None:
        while self._running:
            try:
                job_id = await self.queue.dequeue()
            except asyncio.CancelledError:
                break

            try:
                logger.info("Processing job", job_id=job_id, worker=index)
                await self.processor.run(job_id)
            except asyncio.CancelledError:
                self.queue.task_done(job_id)
                raise
            except Exception as e:
                logger.error("Job processing failed", job_id=job_id, worker=index, error=str(e), exc_info=True)
                self.queue.task_done(job_id)
                try:
                    await asyncio.sleep(self.settings.worker_error_delay_seconds)
                except asyncio.CancelledError:
                    break
                continue

            self.queue.task_done(job_id)
