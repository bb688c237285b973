import json
from typing import List

from presales_engine.components.base.exceptions import NotFoundError, PreconditionFailedError
from presales_engine.components.base.logging import get_logger
from presales_engine.components.configuration.store import ConfigurationStore
from .models import AssessmentJob, AssessmentJobCreate, AssessmentJobSummary, JobStatus
from .queue import JobQueue
from .store import AssessmentJobStore

logger = get_logger("assessment_jobs")


class AssessmentJobService:
    """Intake, status polling and removal of assessment jobs."""

    def __init__(self, job_store: AssessmentJobStore, queue: JobQueue, configuration_store: ConfigurationStore):
        self.job_store = job_store
        self.queue = queue
        self.configuration_store = configuration_store

    async def create_job(self, request: AssessmentJobCreate) -> AssessmentJob:
        """Create a Pending job at step 1 and hand it to the worker."""
        template = request.template or await self.configuration_store.get_template(request.template_id)

        job = AssessmentJob(
            id=0,
            project_name=request.project_name.strip(),
            template_id=request.template_id,
            template_name=template.template_name,
            analysis_mode=request.analysis_mode,
            output_language=request.output_language,
            status=JobStatus.PENDING,
            scope_document_path=request.scope_document_path,
            scope_document_mime_type=request.scope_document_mime_type,
            scope_document_has_manhour=request.scope_document_has_manhour,
            original_template_json=template.model_dump_json(),
            reference_assessments_json=(
                json.dumps([r.model_dump(mode="json") for r in request.reference_assessments])
                if request.reference_assessments
                else None
            ),
            reference_documents_json=(
                json.dumps(request.reference_documents) if request.reference_documents else None
            ),
            raw_manual_assessment_json=(
                request.manual_assessment.model_dump_json(by_alias=True) if request.manual_assessment else None
            ),
        )
        job = await self.job_store.insert(job)
        self.queue.enqueue(job.id)
        logger.info("Job queued", job_id=job.id, template_id=job.template_id)
        return job

    async def get_job(self, job_id: int) -> AssessmentJob:
        return await self.job_store.get_required(job_id)

    async def list_jobs(self, limit: int = 50) -> List[AssessmentJobSummary]:
        jobs = await self.job_store.list(limit=limit)
        return [AssessmentJobSummary.model_validate(job.model_dump()) for job in jobs]

    async def retry_job(self, job_id: int) -> AssessmentJob:
        """Queue a Failed job again; it resumes at the stage that failed."""
        job = await self.job_store.get_required(job_id)
        if job.status != JobStatus.FAILED or self.queue.is_scheduled(job_id):
            raise PreconditionFailedError(
                f"Job {job_id} is {job.status.value} and cannot be retried",
                component="assessment_jobs",
                details={"status": job.status.value},
            )

        job.reset_for_retry()
        job = await self.job_store.update(job)
        self.queue.enqueue(job.id)

        resume_stage = job.next_stage()
        logger.info(
            "Job queued for retry",
            job_id=job.id,
            resume_stage=resume_stage.value if resume_stage else None,
        )
        return job

    async def delete_job(self, job_id: int) -> None:
        if self.queue.is_scheduled(job_id):
            raise PreconditionFailedError(
                f"Job {job_id} is queued or processing and cannot be deleted",
                component="assessment_jobs",
            )
        if not await self.job_store.delete(job_id):
            raise NotFoundError(f"Job {job_id} not found", component="assessment_jobs")
