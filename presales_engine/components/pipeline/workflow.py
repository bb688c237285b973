from typing import Any, Callable, Dict

from langgraph.graph import StateGraph, START, END

from presales_engine.components.jobs.models import STAGE_ORDER, JobStatus, PipelineStage
from presales_engine.components.jobs.store import AssessmentJobStore
from .stages import AssessmentPipelineStages, StageHandler
from .state import AssessmentPipelineState

STAGE_STATUS = {
    PipelineStage.DOCUMENT_ANALYSIS: "document_analyzed",
    PipelineStage.ITEM_GENERATION: "items_generated",
    PipelineStage.EFFORT_ESTIMATION: "effort_estimated",
    PipelineStage.FINAL_ANALYSIS: "analysis_completed",
}


def make_stage_node(stage: PipelineStage, handler: StageHandler, job_store: AssessmentJobStore) -> Callable:
    """LangGraph node running one stage against the persisted job.

    The job is marked Processing on entry and the stage is recorded as
    completed once its outputs are saved. A failing stage still saves what it
    recorded on the job before raising, such as the raw model answer.
    """

    async def stage_node(state: AssessmentPipelineState) -> Dict[str, Any]:
        job = None
        try:
            job = await job_store.get_required(state["job_id"])
            job.mark_stage_started(stage)
            await job_store.update(job)

            message = await handler(job)

            job.mark_stage_completed(stage)
            await job_store.update(job)

            return {
                "status": STAGE_STATUS[stage],
                "current_stage": stage.value,
                "messages": [{"role": stage.value, "content": message}],
            }

        except Exception as e:
            error_message = str(e) or e.__class__.__name__
            if job is not None:
                job.mark_failed(error_message)
                await job_store.update(job)
            return {
                "status": "error",
                "current_stage": stage.value,
                "error_message": error_message,
            }

    stage_node.__name__ = f"{stage.value}_node"
    return stage_node


def make_complete_node(job_store: AssessmentJobStore) -> Callable:
    async def complete_node(state: AssessmentPipelineState) -> Dict[str, Any]:
        job = await job_store.get_required(state["job_id"])
        job.mark_completed()
        await job_store.update(job)
        return {
            "status": "completed",
            "messages": [{"role": "complete", "content": f"Job {job.id} completed"}],
        }

    return complete_node


def make_error_handler_node(job_store: AssessmentJobStore) -> Callable:
    async def error_handler_node(state: AssessmentPipelineState) -> Dict[str, Any]:
        """Make sure the failure is recorded on the job and stop the run."""
        error_message = state.get("error_message") or "Unknown error"
        job = await job_store.get_required(state["job_id"])
        if job.status != JobStatus.FAILED:
            job.mark_failed(error_message)
            await job_store.update(job)
        return {
            "status": "error",
            "messages": [
                {
                    "role": "error_handler",
                    "content": f"Error in {state.get('current_stage', 'unknown')}: {error_message}",
                }
            ],
        }

    return error_handler_node


def route_entry(state: AssessmentPipelineState) -> str:
    """Start at the first stage the job has not completed yet."""
    return state.get("start_stage") or STAGE_ORDER[0].value


def next_node_after(stage: PipelineStage) -> str:
    index = STAGE_ORDER.index(stage)
    return STAGE_ORDER[index + 1].value if index + 1 < len(STAGE_ORDER) else "complete"


def make_route_after(stage: PipelineStage) -> Callable[[AssessmentPipelineState], str]:
    next_node = next_node_after(stage)

    def route_after_stage(state: AssessmentPipelineState) -> str:
        if state.get("status") == "error":
            return "error_handler"
        return next_node

    return route_after_stage


def create_assessment_workflow(stages: AssessmentPipelineStages, job_store: AssessmentJobStore):
    """Create the LangGraph workflow for the assessment pipeline.

    Workflow:
    document_analysis -> item_generation -> effort_estimation
    -> final_analysis -> complete -> END

    Any stage failure routes to error_handler, which marks the job Failed.
    """
    workflow = StateGraph(AssessmentPipelineState)
    handlers = stages.handlers()

    for stage in STAGE_ORDER:
        workflow.add_node(stage.value, make_stage_node(stage, handlers[stage], job_store))
    workflow.add_node("complete", make_complete_node(job_store))
    workflow.add_node("error_handler", make_error_handler_node(job_store))

    workflow.add_conditional_edges(
        START,
        route_entry,
        {stage.value: stage.value for stage in STAGE_ORDER},
    )
    for stage in STAGE_ORDER:
        next_node = next_node_after(stage)
        workflow.add_conditional_edges(
            stage.value,
            make_route_after(stage),
            {next_node: next_node, "error_handler": "error_handler"},
        )

    workflow.add_edge("complete", END)
    workflow.add_edge("error_handler", END)

    return workflow.compile()
