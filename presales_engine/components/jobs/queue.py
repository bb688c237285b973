import asyncio
from typing import Set

from presales_engine.components.base.logging import get_logger

logger = get_logger("job_queue")


class JobQueue:
    """
    FIFO handoff of job ids from intake to the worker loops.

    An id that is already waiting or being processed is not scheduled a
    second time, so each job is delivered to exactly one loop at a time.
    """

    def __init__(self):
        self._queue: asyncio.Queue[int] = asyncio.Queue()
        self._scheduled: Set[int] = set()

    def enqueue(self, job_id: int) -> bool:
        """Schedule a job; returns False when it is already scheduled."""
        if job_id in self._scheduled:
            logger.debug("Job already scheduled", job_id=job_id)
            return False
        self._scheduled.add(job_id)
        self._queue.put_nowait(job_id)
        logger.debug("Job enqueued", job_id=job_id, depth=self._queue.qsize())
        return True

    async def dequeue(self) -> int:
        """Wait for the next job id.

        Cancelling the waiting task raises asyncio.CancelledError.
        """
        return await self._queue.get()

    def task_done(self, job_id: int) -> None:
        """Release a delivered job so it can be scheduled again."""
        self._scheduled.discard(job_id)
        self._queue.task_done()

    def is_scheduled(self, job_id: int) -> bool:
        return job_id in self._scheduled

    @property
    def depth(self) -> int:
        return self._queue.qsize()
