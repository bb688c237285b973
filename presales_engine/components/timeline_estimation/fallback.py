"""
Heuristic timeline estimation used when the model path fails.

Works from historical reference projects when there are any, otherwise from
fixed man-day thresholds. Never raises for finite, non-negative input.
"""

import math
from typing import Dict, List, Optional

from presales_engine.components.configuration.models import TimelineEstimationReference
from .models import SequenceType, TimelineEstimationRecord, TimelinePhaseEstimate, TimelineRoleEstimate

SHORT_SCALE_MAX_MAN_DAYS = 60
MEDIUM_SCALE_MAX_MAN_DAYS = 120
MIN_RATIO = 0.6
MAX_RATIO = 1.6
MIN_FALLBACK_HEADCOUNT = 0.5
OVERALL_PHASE = "Overall Delivery"
GENERAL_ROLE = "General"


def determine_project_scale(total_man_days: float, references: List[TimelineEstimationReference]) -> str:
    """Scale label from reference groups, or from fixed thresholds without references.

    References are grouped by label (ignoring case) and ordered by their
    average duration; the largest group whose average does not exceed
    `total_man_days` wins.
    """
    if references:
        groups: Dict[str, List[int]] = {}
        labels: Dict[str, str] = {}
        for reference in references:
            key = (reference.project_scale or "").lower()
            labels.setdefault(key, reference.project_scale)
            groups.setdefault(key, []).append(reference.total_duration_days)

        ordered = sorted(
            ((labels[key], sum(durations) / len(durations)) for key, durations in groups.items()),
            key=lambda entry: entry[1],
        )
        if total_man_days <= 0:
            scale = ordered[0][0]
        else:
            fitting = [entry for entry in ordered if total_man_days >= entry[1]]
            scale = (fitting[-1] if fitting else ordered[-1])[0]
        return scale or "Unknown"

    if total_man_days <= SHORT_SCALE_MAX_MAN_DAYS:
        return "Short"
    if total_man_days <= MEDIUM_SCALE_MAX_MAN_DAYS:
        return "Medium"
    return "Long"


def infer_sequence_type(phase_name: str, has_overlap: bool) -> SequenceType:
    name = phase_name.lower()
    if not has_overlap:
        return "Subsequent" if "test" in name else "Serial"
    if "deploy" in name or "launch" in name:
        return "Subsequent"
    if "plan" in name or "prep" in name:
        return "Serial"
    return "Parallel"


def _find_reference(
    scale: str, references: List[TimelineEstimationReference]
) -> Optional[TimelineEstimationReference]:
    for reference in references:
        if (reference.project_scale or "").lower() == scale.lower():
            return reference
    return references[0] if references else None


def _reference_phase_duration(reference: TimelineEstimationReference, phase_name: str) -> Optional[int]:
    for name, duration in reference.phase_durations.items():
        if name.lower() == phase_name.lower():
            return duration
    return None


def estimate_total_duration(total_man_days: float, reference: Optional[TimelineEstimationReference]) -> int:
    if reference is not None and reference.total_duration_days > 0:
        phase_total = sum(reference.phase_durations.values())
        ratio = total_man_days / phase_total if phase_total > 0 else 1.0
        ratio = min(MAX_RATIO, max(MIN_RATIO, ratio)) if math.isfinite(ratio) else 1.0
        return max(1, int(round(reference.total_duration_days * ratio)))
    if not math.isfinite(total_man_days):
        return 1
    return max(1, math.ceil(total_man_days))


def build_phases(
    activity_man_days: Dict[str, float],
    reference: Optional[TimelineEstimationReference],
    total_duration: int,
) -> List[TimelinePhaseEstimate]:
    """One phase per activity, sized by its share of the effort."""
    if not activity_man_days:
        return [TimelinePhaseEstimate(phase_name=OVERALL_PHASE, duration_days=total_duration, sequence_type="Serial")]

    total_man_days = sum(activity_man_days.values())
    has_overlap = reference is not None and sum(reference.phase_durations.values()) > reference.total_duration_days

    phases = []
    for phase_name in sorted(activity_man_days, key=str.lower):
        man_days = activity_man_days[phase_name]
        share = man_days / total_man_days if total_man_days > 0 else 1 / len(activity_man_days)
        duration = max(1, int(round(total_duration * share)))
        if reference is not None:
            reference_duration = _reference_phase_duration(reference, phase_name)
            if reference_duration is not None:
                duration = max(1, int(round((duration + reference_duration) / 2)))
        phases.append(
            TimelinePhaseEstimate(
                phase_name=phase_name,
                duration_days=duration,
                sequence_type=infer_sequence_type(phase_name, has_overlap),
            )
        )
    return phases


def build_roles(role_man_days: Dict[str, float], total_duration: int) -> List[TimelineRoleEstimate]:
    """Headcount per role over the whole timeline, at least half a person."""
    roles = []
    for role in sorted(role_man_days, key=str.lower):
        man_days = role_man_days[role]
        if man_days <= 0:
            continue
        headcount = man_days / total_duration if total_duration > 0 else man_days
        if 0 < headcount < MIN_FALLBACK_HEADCOUNT:
            headcount = MIN_FALLBACK_HEADCOUNT
        roles.append(
            TimelineRoleEstimate(
                role=role,
                total_man_days=round(man_days, 2),
                estimated_headcount=round(headcount, 2),
            )
        )

    if not roles:
        roles.append(
            TimelineRoleEstimate(
                role=GENERAL_ROLE,
                total_man_days=round(max(1.0, total_duration * 1.5), 2),
                estimated_headcount=max(1.0, total_duration / 10),
            )
        )
    return roles


def build_notes(
    reference: Optional[TimelineEstimationReference],
    total_duration: int,
    summed_phase_durations: int,
) -> str:
    notes = []
    if reference is not None:
        reference_sum = sum(reference.phase_durations.values())
        if reference_sum != reference.total_duration_days:
            notes.append(
                f"Historical {reference.project_scale} projects show phase overlap "
                f"(sum {reference_sum}d vs total {reference.total_duration_days}d)."
            )
    if summed_phase_durations != total_duration:
        notes.append(
            f"Total duration ({total_duration}d) differs from summed phases ({summed_phase_durations}d) "
            "to account for parallel/subsequent work."
        )
    if not notes:
        notes.append("Assuming primarily serial sequencing due to limited overlap data.")
    return " ".join(notes)


class FallbackEstimator:
    """Deterministic timeline estimate from man-day aggregates and history."""

    def estimate(
        self,
        activity_man_days: Dict[str, float],
        role_man_days: Dict[str, float],
        references: List[TimelineEstimationReference],
    ) -> TimelineEstimationRecord:
        total_man_days = sum(activity_man_days.values())
        scale = determine_project_scale(total_man_days, references)
        reference = _find_reference(scale, references)

        total_duration = estimate_total_duration(total_man_days, reference)
        phases = build_phases(activity_man_days, reference, total_duration)
        roles = build_roles(role_man_days, total_duration)

        return TimelineEstimationRecord(
            project_scale=scale,
            total_duration_days=total_duration,
            phases=phases,
            roles=roles,
            sequencing_notes=build_notes(reference, total_duration, sum(p.duration_days for p in phases)),
            estimation_source="fallback",
        )
