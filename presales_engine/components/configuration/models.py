from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from presales_engine.components.assessments.models import ProjectTemplate


class PresalesRole(BaseModel):
    """Delivery role with its day rate."""
    role_name: str
    expected_level: str = ""
    cost_per_day: float = 0.0


class PresalesActivity(BaseModel):
    """Delivery activity (phase) shown on the timeline."""
    activity_name: str
    display_order: int = 1


class ItemActivityMapping(BaseModel):
    """Maps an assessment item to the activity it belongs to."""
    item_name: str
    activity_name: str


class EstimationColumnRoleMapping(BaseModel):
    """Maps an estimation column (e.g. "Backend") to a role."""
    estimation_column: str
    role_name: str


class TeamTypeRole(BaseModel):
    """Role entry of a team type with its headcount multiplier."""
    id: Optional[int] = None
    team_type_id: Optional[int] = None
    role_name: str
    headcount: float = 1.0


class TeamType(BaseModel):
    """Team size bracket: [min_man_days, max_man_days], max <= 0 is unbounded."""
    id: Optional[int] = None
    name: str
    min_man_days: float = 0.0
    max_man_days: float = 0.0
    roles: List[TeamTypeRole] = Field(default_factory=list)

    def contains(self, total_man_days: float) -> bool:
        if total_man_days < self.min_man_days:
            return False
        return self.max_man_days <= 0 or total_man_days <= self.max_man_days


class PresalesConfiguration(BaseModel):
    """Presales configuration read by the aggregator and the estimator."""
    roles: List[PresalesRole] = Field(default_factory=list)
    activities: List[PresalesActivity] = Field(default_factory=list)
    item_activities: List[ItemActivityMapping] = Field(default_factory=list)
    estimation_column_roles: List[EstimationColumnRoleMapping] = Field(default_factory=list)
    team_types: List[TeamType] = Field(default_factory=list)
    templates: List[ProjectTemplate] = Field(default_factory=list)


class TimelineEstimationReference(BaseModel):
    """Historical project used by the fallback estimator."""
    id: Optional[int] = None
    project_scale: str
    phase_durations: Dict[str, int] = Field(default_factory=dict)
    total_duration_days: int = 0
    resource_allocation: Dict[str, float] = Field(default_factory=dict)
