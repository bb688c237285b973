"""Effort aggregation over a completed assessment.

The timeline estimator only depends on the `EstimationAggregator` protocol;
`AssessmentTaskAggregator` is the default implementation. Hours are
converted to man-days at 8 hours per day.
"""

from typing import Dict, List, Protocol

from presales_engine.components.configuration.models import PresalesConfiguration
from .models import ProjectAssessment

HOURS_PER_MAN_DAY = 8.0
UNMAPPED_ACTIVITY = "Unmapped"
UNASSIGNED_ROLE = "Unassigned"


class EstimationAggregator(Protocol):
    def aggregate_estimation_column_effort(self, assessment: ProjectAssessment) -> Dict[str, float]:
        ...

    def calculate_activity_man_days(
        self, assessment: ProjectAssessment, configuration: PresalesConfiguration
    ) -> Dict[str, float]:
        ...

    def calculate_role_man_days(
        self, assessment: ProjectAssessment, configuration: PresalesConfiguration
    ) -> Dict[str, float]:
        ...


def _add(target: Dict[str, float], key: str, value: float) -> None:
    # case-insensitive accumulation, first spelling wins
    for existing in target:
        if existing.lower() == key.lower():
            target[existing] += value
            return
    target[key] = value


class AssessmentTaskAggregator:
    """Default aggregator: sums needed items' hours per column, item, activity and role."""

    def aggregate_estimation_column_effort(self, assessment: ProjectAssessment) -> Dict[str, float]:
        result: Dict[str, float] = {}
        for section in assessment.sections:
            for item in section.items:
                if not item.is_needed:
                    continue
                for column, hours in item.estimates.items():
                    column_name = (column or "").strip()
                    if not column_name or hours is None or hours <= 0:
                        continue
                    _add(result, column_name, hours / HOURS_PER_MAN_DAY)
        return result

    def aggregate_item_effort(self, assessment: ProjectAssessment) -> Dict[str, float]:
        result: Dict[str, float] = {}
        for section in assessment.sections:
            for item in section.items:
                item_name = (item.item_name or "").strip()
                if not item.is_needed or not item_name:
                    continue
                total_hours = sum(h for h in item.estimates.values() if h is not None and h > 0)
                if total_hours <= 0:
                    continue
                _add(result, item_name, total_hours / HOURS_PER_MAN_DAY)
        return result

    def calculate_activity_man_days(
        self, assessment: ProjectAssessment, configuration: PresalesConfiguration
    ) -> Dict[str, float]:
        activity_by_item = {
            mapping.item_name.lower(): mapping.activity_name
            for mapping in reversed(configuration.item_activities)
        }
        result: Dict[str, float] = {}
        for item_name, man_days in self.aggregate_item_effort(assessment).items():
            activity = (activity_by_item.get(item_name.lower()) or "").strip() or UNMAPPED_ACTIVITY
            _add(result, activity, man_days)
        return result

    def calculate_role_man_days(
        self, assessment: ProjectAssessment, configuration: PresalesConfiguration
    ) -> Dict[str, float]:
        result: Dict[str, float] = {}
        for column, man_days in self.aggregate_estimation_column_effort(assessment).items():
            roles: List[str] = []
            for mapping in configuration.estimation_column_roles:
                role = (mapping.role_name or "").strip()
                if mapping.estimation_column.lower() != column.lower() or not role:
                    continue
                if role.lower() not in (r.lower() for r in roles):
                    roles.append(role)

            if not roles:
                _add(result, UNASSIGNED_ROLE, man_days)
                continue

            share = man_days / len(roles)
            for role in roles:
                _add(result, role, share)
        return result
