from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from presales_engine.components.base.component import BaseComponent
from presales_engine.components.base.logging import get_logger
from presales_engine.components.jobs.models import JobStatus
from presales_engine.components.jobs.store import AssessmentJobStore
from .stages import AssessmentPipelineStages
from .workflow import create_assessment_workflow

logger = get_logger("pipeline_orchestrator")


class PipelineRunResult(BaseModel):
    """Outcome of one orchestrator run."""
    job_id: int
    status: JobStatus
    step: int
    messages: List[Dict] = Field(default_factory=list)
    error_message: Optional[str] = None


class PipelineOrchestrator(BaseComponent[int, PipelineRunResult]):
    """Drives an assessment job through the pipeline stages.

    A job that already completed some stages resumes at the first stage it
    has not completed. Stage failures are recorded on the job (status
    Failed, `last_error`) and do not raise.
    """

    def __init__(self, job_store: AssessmentJobStore, stages: AssessmentPipelineStages):
        self.job_store = job_store
        self.workflow = create_assessment_workflow(stages, job_store)

    @property
    def component_name(self) -> str:
        return "pipeline_orchestrator"

    async def run(self, job_id: int) -> None:
        await self(job_id)

    async def process(self, request: int) -> PipelineRunResult:
        job = await self.job_store.get_required(request)

        if job.status == JobStatus.COMPLETED:
            logger.info("Skipping completed job", job_id=job.id)
            return PipelineRunResult(job_id=job.id, status=job.status, step=job.step)

        start_stage = job.next_stage()
        if start_stage is None:
            job.mark_completed()
            await self.job_store.update(job)
            return PipelineRunResult(job_id=job.id, status=job.status, step=job.step)

        logger.info("Starting pipeline", job_id=job.id, start_stage=start_stage.value, step=job.step)
        final_state = await self.workflow.ainvoke(
            {"job_id": job.id, "start_stage": start_stage.value, "status": "started", "messages": []}
        )

        job = await self.job_store.get_required(request)
        logger.info(
            "Finished pipeline",
            job_id=job.id,
            status=job.status.value,
            step=job.step,
            error=job.last_error,
        )
        return PipelineRunResult(
            job_id=job.id,
            status=job.status,
            step=job.step,
            messages=final_state.get("messages", []),
            error_message=final_state.get("error_message"),
        )
