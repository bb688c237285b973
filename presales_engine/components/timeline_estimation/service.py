from datetime import datetime, timezone
from typing import Dict, List, Optional

from presales_engine.components.assessments.aggregator import AssessmentTaskAggregator, EstimationAggregator
from presales_engine.components.assessments.store import ProjectAssessmentStore
from presales_engine.components.base.component import BaseComponent
from presales_engine.components.base.exceptions import (
    ExternalCallFailureError,
    MalformedResponseError,
    NoEstimableDataError,
    NotFoundError,
    PreconditionFailedError,
)
from presales_engine.components.base.logging import get_logger
from presales_engine.components.configuration.store import ConfigurationStore
from presales_engine.utils.ai_response import interpret_ai_response
from presales_engine.utils.llm_client import LlmClient
from .allocation import resolve_team_allocation
from .fallback import FallbackEstimator
from .models import (
    AiTimelineEstimationResult,
    TimelineEstimationRecord,
    TimelineEstimationSummary,
    TimelineEstimatorRawInput,
    TimelinePhaseEstimate,
    TimelineRoleEstimate,
)
from .prompts import build_estimator_prompt
from .store import TimelineEstimationStore

logger = get_logger("timeline_estimator")

DEFAULT_SEQUENCING_NOTES = "Total duration differs from summed phases due to assumed overlaps between phases."
MIN_SYNTHESIZED_HEADCOUNT = 0.1


def normalise_sequence_type(value: Optional[str]) -> str:
    text = (value or "").strip().lower()
    if text == "parallel":
        return "Parallel"
    if text == "subsequent":
        return "Subsequent"
    return "Serial"


def map_ai_result(result: AiTimelineEstimationResult, duration_anchor: int) -> TimelineEstimationRecord:
    """Turn the interpreted model answer into a record.

    The total duration is at least 1 day and never below the anchor.
    """
    phases = [
        TimelinePhaseEstimate(
            phase_name=phase.phase_name.strip(),
            duration_days=max(1, phase.duration_days),
            sequence_type=normalise_sequence_type(phase.sequence_type),
        )
        for phase in result.phases or []
        if phase.phase_name and phase.phase_name.strip()
    ]
    scale = (result.project_scale or "").strip() or "Unknown"
    return TimelineEstimationRecord(
        project_scale=scale,
        total_duration_days=max(1, result.total_duration_days, duration_anchor),
        phases=phases,
        sequencing_notes=(result.sequencing_notes or "").strip(),
        estimation_source="ai",
    )


def synthesize_roles(role_man_days: Dict[str, float], total_duration: int) -> List[TimelineRoleEstimate]:
    """Headcount per role as man-days over duration, rounded to one decimal."""
    roles = []
    for role, man_days in role_man_days.items():
        if man_days <= 0:
            continue
        headcount = man_days / total_duration
        rounded = round(headcount, 1)
        if rounded == 0 and headcount > 0:
            rounded = MIN_SYNTHESIZED_HEADCOUNT
        roles.append(TimelineRoleEstimate(role=role, total_man_days=round(man_days, 2), estimated_headcount=rounded))
    return sorted(roles, key=lambda r: r.role.lower())


class TimelineEstimatorService(BaseComponent[int, TimelineEstimationRecord]):
    """Generates the delivery timeline of a completed assessment.

    The model proposes scale, duration and phases; any failure on that path
    (call error, timeout, unusable answer) is logged and replaced by the
    heuristic fallback estimate, so callers only see identity and
    configuration errors.
    """

    def __init__(
        self,
        assessment_store: ProjectAssessmentStore,
        configuration_store: ConfigurationStore,
        estimation_store: TimelineEstimationStore,
        llm_client: LlmClient,
        aggregator: Optional[EstimationAggregator] = None,
        fallback: Optional[FallbackEstimator] = None,
    ):
        self.assessment_store = assessment_store
        self.configuration_store = configuration_store
        self.estimation_store = estimation_store
        self.aggregator = aggregator or AssessmentTaskAggregator()
        self.llm = llm_client
        self.fallback = fallback or FallbackEstimator()

    @property
    def component_name(self) -> str:
        return "timeline_estimator"

    async def process(self, request: int) -> TimelineEstimationRecord:
        return await self.generate(request)

    async def generate(self, assessment_id: int) -> TimelineEstimationRecord:
        assessment = await self.assessment_store.get(assessment_id)
        if assessment is None:
            raise NotFoundError(f"Assessment {assessment_id} was not found", component=self.component_name)
        if not assessment.is_completed:
            raise PreconditionFailedError(
                "Timeline estimation requires a completed assessment",
                component=self.component_name,
                details={"assessment_id": assessment_id, "status": assessment.status},
            )

        configuration = await self.configuration_store.get_configuration()
        column_effort = self.aggregator.aggregate_estimation_column_effort(assessment)
        if not column_effort:
            raise NoEstimableDataError(
                "Assessment does not contain any estimation data to generate a timeline estimate",
                component=self.component_name,
                details={"assessment_id": assessment_id},
            )

        activity_man_days = self.aggregator.calculate_activity_man_days(assessment, configuration)
        role_man_days = self.aggregator.calculate_role_man_days(assessment, configuration)
        references = await self.configuration_store.get_references()

        allocation = resolve_team_allocation(role_man_days, configuration.team_types)
        logger.info(
            "Team allocation resolved",
            assessment_id=assessment_id,
            team_type=allocation.team_type.name,
            total_man_days=round(allocation.total_man_days, 2),
            bottleneck_role=allocation.bottleneck_role,
            duration_anchor=allocation.duration_anchor,
        )

        raw_input = TimelineEstimatorRawInput(
            activity_man_days=dict(activity_man_days),
            role_man_days=dict(role_man_days),
            total_role_man_days=allocation.total_man_days,
            durations_per_role=dict(allocation.durations_per_role),
            selected_team_type=allocation.team_type,
            duration_anchor=allocation.duration_anchor,
        )

        prompt = build_estimator_prompt(
            activity_man_days,
            allocation.durations_per_role,
            allocation.duration_anchor,
            allocation.team_type.name,
        )
        try:
            raw_response = await self.llm.generate(prompt)
            result = interpret_ai_response(raw_response, AiTimelineEstimationResult, component_name=self.component_name)
            estimation = map_ai_result(result, allocation.duration_anchor)
        except (MalformedResponseError, ExternalCallFailureError) as e:
            logger.warning(
                "AI timeline estimation failed, using heuristic estimate",
                assessment_id=assessment_id,
                error_type=e.__class__.__name__,
                error=e.message,
            )
            estimation = self.fallback.estimate(activity_man_days, role_man_days, references)
            estimation.fallback_reason = f"{e.__class__.__name__}: {e.message}"

        estimation.raw_input_data = raw_input
        if not estimation.project_scale.strip():
            estimation.project_scale = allocation.team_type.name
        if not estimation.roles:
            estimation.roles = synthesize_roles(role_man_days, estimation.total_duration_days)
        if not estimation.sequencing_notes.strip():
            estimation.sequencing_notes = DEFAULT_SEQUENCING_NOTES

        estimation.assessment_id = assessment_id
        estimation.project_name = assessment.project_name
        estimation.template_name = assessment.template_name or ""
        estimation.generated_at = datetime.now(timezone.utc)

        record = TimelineEstimationRecord.model_validate(estimation.model_dump())
        return await self.estimation_store.upsert(record)

    async def get(self, assessment_id: int) -> TimelineEstimationRecord:
        record = await self.estimation_store.get(assessment_id)
        if record is None:
            raise NotFoundError(
                f"No timeline estimation for assessment {assessment_id}",
                component=self.component_name,
            )
        return record

    async def list_summaries(self) -> List[TimelineEstimationSummary]:
        return await self.estimation_store.list_summaries()
