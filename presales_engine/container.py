"""
Service container.

Builds every store and service once per process; the FastAPI lifespan owns
the container and routers reach it through `app.state.container`.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from presales_engine.components.assessments.store import ProjectAssessmentStore
from presales_engine.components.base.config import Settings, get_settings
from presales_engine.components.configuration.store import ConfigurationStore
from presales_engine.components.jobs.queue import JobQueue
from presales_engine.components.jobs.service import AssessmentJobService
from presales_engine.components.jobs.store import AssessmentJobStore
from presales_engine.components.jobs.worker import AssessmentJobWorker
from presales_engine.components.pipeline.service import PipelineOrchestrator
from presales_engine.components.pipeline.stages import AssessmentPipelineStages
from presales_engine.components.timeline_estimation.service import TimelineEstimatorService
from presales_engine.components.timeline_estimation.store import TimelineEstimationStore
from presales_engine.utils.llm_client import LlmClient


@dataclass
class ServiceContainer:
    settings: Settings
    llm_client: LlmClient
    job_store: AssessmentJobStore
    assessment_store: ProjectAssessmentStore
    configuration_store: ConfigurationStore
    estimation_store: TimelineEstimationStore
    queue: JobQueue
    orchestrator: PipelineOrchestrator
    worker: AssessmentJobWorker
    job_service: AssessmentJobService
    timeline_service: TimelineEstimatorService


def build_container(settings: Optional[Settings] = None, llm_client: Optional[LlmClient] = None) -> ServiceContainer:
    settings = settings or get_settings()
    llm_client = llm_client or LlmClient(settings)

    job_store = AssessmentJobStore(settings.get_jobs_path())
    assessment_store = ProjectAssessmentStore(settings.get_assessments_path())
    configuration_store = ConfigurationStore(
        Path(settings.presales_configuration_file),
        Path(settings.timeline_references_file),
    )
    estimation_store = TimelineEstimationStore(settings.get_estimations_path())
    queue = JobQueue()

    orchestrator = PipelineOrchestrator(
        job_store,
        AssessmentPipelineStages(assessment_store, llm_client=llm_client),
    )

    return ServiceContainer(
        settings=settings,
        llm_client=llm_client,
        job_store=job_store,
        assessment_store=assessment_store,
        configuration_store=configuration_store,
        estimation_store=estimation_store,
        queue=queue,
        orchestrator=orchestrator,
        worker=AssessmentJobWorker(queue, orchestrator, job_store, settings=settings),
        job_service=AssessmentJobService(job_store, queue, configuration_store),
        timeline_service=TimelineEstimatorService(
            assessment_store,
            configuration_store,
            estimation_store,
            llm_client=llm_client,
        ),
    )
