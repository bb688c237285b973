from typing import TypedDict, Annotated, List, Dict, Optional, Literal
import operator


class AssessmentPipelineState(TypedDict, total=False):
    """Workflow state for one pipeline run of an assessment job.

    The job itself is persisted by the nodes; the state only carries the
    job id, routing information and an audit trail of messages.
    """

    job_id: int
    # First stage to run; earlier stages completed in a previous run
    start_stage: str

    # CONTROL FIELDS - Updated throughout workflow
    status: Literal[
        "started",
        "document_analyzed",
        "items_generated",
        "effort_estimated",
        "analysis_completed",
        "completed",
        "error",
    ]
    current_stage: str
    error_message: Optional[str]

    # Accumulated messages (uses operator.add reducer)
    messages: Annotated[List[Dict], operator.add]
