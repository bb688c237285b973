from .models import AssessmentJob, AssessmentJobCreate, JobStatus, PipelineStage
from .queue import JobQueue
from .store import AssessmentJobStore
from .worker import AssessmentJobWorker

__all__ = [
    "AssessmentJob",
    "AssessmentJobCreate",
    "JobStatus",
    "PipelineStage",
    "JobQueue",
    "AssessmentJobStore",
    "AssessmentJobWorker",
]
