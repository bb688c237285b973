from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from presales_engine.components.configuration.models import TeamType

SequenceType = Literal["Serial", "Parallel", "Subsequent"]


class TimelinePhaseEstimate(BaseModel):
    """Duration and sequencing of one delivery phase."""
    phase_name: str
    duration_days: int = Field(..., ge=1)
    sequence_type: SequenceType = "Serial"


class TimelineRoleEstimate(BaseModel):
    """Recommended headcount for a role over the whole timeline."""
    role: str
    total_man_days: float = 0.0
    estimated_headcount: float = 0.0


class TimelineEstimatorRawInput(BaseModel):
    """Numeric inputs the estimate was derived from."""
    activity_man_days: Dict[str, float] = Field(default_factory=dict)
    role_man_days: Dict[str, float] = Field(default_factory=dict)
    total_role_man_days: float = 0.0
    durations_per_role: Dict[str, int] = Field(default_factory=dict)
    selected_team_type: Optional[TeamType] = None
    duration_anchor: int = 1


class TimelineEstimationRecord(BaseModel):
    """Timeline estimate for one assessment (upserted by assessment id)."""
    assessment_id: int = 0
    project_name: str = ""
    template_name: str = ""
    project_scale: str = ""
    total_duration_days: int = Field(default=1, ge=1)
    phases: List[TimelinePhaseEstimate] = Field(default_factory=list)
    roles: List[TimelineRoleEstimate] = Field(default_factory=list)
    sequencing_notes: str = ""
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    estimation_source: Literal["ai", "fallback"] = "ai"
    fallback_reason: str = ""
    raw_input_data: Optional[TimelineEstimatorRawInput] = None


class TimelineEstimationSummary(BaseModel):
    """Light snapshot used by list views."""
    assessment_id: int
    project_name: str = ""
    template_name: str = ""
    generated_at: Optional[datetime] = None
    project_scale: str = ""


class AiPhaseEstimate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phase_name: Optional[str] = ""
    duration_days: int = 0
    sequence_type: Optional[str] = "Serial"


class AiTimelineEstimationResult(BaseModel):
    """Shape requested from the model (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    project_scale: Optional[str] = ""
    total_duration_days: int = 0
    sequencing_notes: Optional[str] = ""
    phases: Optional[List[AiPhaseEstimate]] = None
