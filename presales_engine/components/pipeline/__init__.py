from .state import AssessmentPipelineState
from .stages import AssessmentPipelineStages
from .workflow import create_assessment_workflow
from .service import PipelineOrchestrator, PipelineRunResult

__all__ = [
    "AssessmentPipelineState",
    "AssessmentPipelineStages",
    "create_assessment_workflow",
    "PipelineOrchestrator",
    "PipelineRunResult",
]
