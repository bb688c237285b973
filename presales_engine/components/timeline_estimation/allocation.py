"""
Team allocation.

Picks the team-size bracket for a project's total man-days and levels each
role's effort over the headcount the bracket provides. The longest per-role
duration is the duration anchor: no schedule can be shorter than it.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from presales_engine.components.base.exceptions import NoTeamTypeConfiguredError
from presales_engine.components.configuration.models import TeamType

MEDIUM_TEAM_MARKER = "medium"


@dataclass
class TeamAllocation:
    team_type: TeamType
    total_man_days: float
    durations_per_role: Dict[str, int] = field(default_factory=dict)
    duration_anchor: int = 1
    bottleneck_role: Optional[str] = None


def select_team_type(team_types: List[TeamType], total_man_days: float) -> TeamType:
    """Return the lowest bracket containing `total_man_days`.

    Falls back to a bracket named like "Medium", then to the first one.

    Raises:
        NoTeamTypeConfiguredError: If no team types are configured
    """
    if not team_types:
        raise NoTeamTypeConfiguredError(
            "No suitable team type configuration found for this project scale",
            component="team_allocation",
        )

    for team_type in sorted(team_types, key=lambda t: t.min_man_days):
        if team_type.contains(total_man_days):
            return team_type

    for team_type in team_types:
        if MEDIUM_TEAM_MARKER in team_type.name.lower():
            return team_type

    return team_types[0]


def _headcount_for(team_type: TeamType, role: str) -> float:
    for team_role in team_type.roles:
        if team_role.role_name.lower() == role.lower():
            headcount = team_role.headcount
            if math.isfinite(headcount) and headcount > 0:
                return headcount
            break
    return 1.0


def resolve_team_allocation(role_man_days: Dict[str, float], team_types: List[TeamType]) -> TeamAllocation:
    """Select a team type and compute per-role durations, anchor and bottleneck.

    The selected team type is a deep copy; callers may change it freely.
    When two roles share the longest duration the first one in
    `role_man_days` is the bottleneck.
    """
    total_man_days = sum(role_man_days.values())
    team_type = select_team_type(team_types, total_man_days).model_copy(deep=True)

    durations: Dict[str, int] = {}
    for role, man_days in role_man_days.items():
        if man_days <= 0:
            continue
        duration = math.ceil(man_days / _headcount_for(team_type, role))
        durations[role] = max(1, duration)

    bottleneck_role = None
    if durations:
        # max() keeps the first of equal values
        bottleneck_role = max(durations, key=lambda r: durations[r])
        duration_anchor = durations[bottleneck_role]
    else:
        duration_anchor = max(1, math.ceil(total_man_days))

    return TeamAllocation(
        team_type=team_type,
        total_man_days=total_man_days,
        durations_per_role=durations,
        duration_anchor=duration_anchor,
        bottleneck_role=bottleneck_role,
    )
