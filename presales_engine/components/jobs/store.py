"""
Assessment job store.

Jobs are stored as JSON files in {jobs_dir}/{job_id}.json; ids come from a
counter file next to them.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from presales_engine.components.base.config import get_settings
from presales_engine.components.base.exceptions import NotFoundError, PersistenceFailureError
from presales_engine.components.base.logging import get_logger
from presales_engine.utils.file_io import atomic_write_text, read_text
from .models import AssessmentJob, JobStatus

logger = get_logger("job_store")


class AssessmentJobStore:
    def __init__(self, jobs_dir: Optional[Path] = None):
        self.jobs_dir = jobs_dir or get_settings().get_jobs_path()
        self.jobs_dir.mkdir(parents=True, exist_ok=True)
        self._job_counter_file = self.jobs_dir / ".job_counter"
        self._lock = asyncio.Lock()

    async def insert(self, job: AssessmentJob) -> AssessmentJob:
        """Persist a new job, assigning the next sequential id."""
        async with self._lock:
            job.id = await self._next_job_id()
            job.sync_step_with_status()
            await self._write(job)
        logger.info("Job created", job_id=job.id, project_name=job.project_name)
        return job

    async def get(self, job_id: int) -> Optional[AssessmentJob]:
        data = await read_text(self._path(job_id), component="job_store")
        if data is None:
            return None
        return AssessmentJob.model_validate_json(data)

    async def get_required(self, job_id: int) -> AssessmentJob:
        job = await self.get(job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found", component="job_store")
        return job

    async def update(self, job: AssessmentJob) -> AssessmentJob:
        """Replace the stored job in one atomic write."""
        job.touch()
        async with self._lock:
            await self._write(job)
        return job

    async def delete(self, job_id: int) -> bool:
        path = self._path(job_id)
        async with self._lock:
            if not path.exists():
                return False
            try:
                path.unlink()
            except OSError as e:
                raise PersistenceFailureError(f"Failed to delete job {job_id}: {e}", component="job_store")
        logger.info("Job deleted", job_id=job_id)
        return True

    async def list(self, limit: int = 50) -> List[AssessmentJob]:
        """List jobs, most recently created first."""
        jobs = await self._load_all()
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs[:limit]

    async def list_recoverable(self, lease_seconds: int) -> List[AssessmentJob]:
        """Jobs to hand back to the worker, oldest first.

        Every Pending job qualifies; a Processing job qualifies once it has
        not been touched for `lease_seconds` (0 takes every Processing job).
        """
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=lease_seconds)
        recoverable = [
            job for job in await self._load_all()
            if job.status == JobStatus.PENDING
            or (job.status == JobStatus.PROCESSING and job.modified_at <= cutoff)
        ]
        recoverable.sort(key=lambda j: j.created_at)
        return recoverable

    async def _load_all(self) -> List[AssessmentJob]:
        jobs = []
        for path in self.jobs_dir.glob("*.json"):
            data = await read_text(path, component="job_store")
            if data:
                jobs.append(AssessmentJob.model_validate_json(data))
        return jobs

    async def _write(self, job: AssessmentJob) -> None:
        await atomic_write_text(self._path(job.id), job.model_dump_json(indent=2), component="job_store")

    async def _next_job_id(self) -> int:
        current = await read_text(self._job_counter_file, component="job_store")
        counter = int(current.strip()) if current and current.strip().isdigit() else 0
        counter += 1
        await atomic_write_text(self._job_counter_file, str(counter), component="job_store")
        return counter

    def _path(self, job_id: int) -> Path:
        return self.jobs_dir / f"{job_id}.json"
