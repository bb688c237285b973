from typing import Dict

TIMELINE_ESTIMATOR_PROMPT = """You are an expert Project Scheduler AI. Your task is to create a realistic project plan.

**Project Data:**
1.  **Team Configuration:** A '{team_type_name}' configuration is used.
2.  **Phase Effort Breakdown:** The total work required for each phase.
{activity_lines}
3.  **Resource Bottleneck Analysis:** The minimum duration required by each role. The project cannot be shorter than the longest duration listed here.
{role_duration_lines}

**Instructions:**
1.  **Critical Path Anchor:** The project's critical path is determined by the longest bottleneck ({bottleneck_role}). The final `totalDurationDays` MUST be >= **{duration_anchor} days**.
2.  **Sequence All Phases:** You MUST provide a duration and sequence for **every one of these phases:** {expected_phases}. Do not omit any from your final JSON output.
3.  **Construct Timeline:** Based on your sequence (using 'Serial', 'Subsequent', 'Parallel'), determine the final `totalDurationDays`. It will likely be longer than the anchor due to dependencies.
4.  **Assign Phase Durations:** Assign a `durationDays` to each phase that is logical within your total timeline and reflects its relative effort.
5.  **Output:** Provide a minified JSON response. Do not include the 'roles' array.

**JSON Output Example:**
{{
  "projectScale": "{team_type_name}",
  "totalDurationDays": {example_total},
  "sequencingNotes": "The timeline is anchored by the {bottleneck_role}'s {duration_anchor}-day work bottleneck. After sequencing all phases with overlaps, the total duration is {example_total} days.",
  "phases": [ {{ "phaseName": "Analysis & Design", "durationDays": 20, "sequenceType": "Serial" }} ]
}}
Return ONLY the JSON object."""


def build_estimator_prompt(
    activity_man_days: Dict[str, float],
    durations_per_role: Dict[str, int],
    duration_anchor: int,
    team_type_name: str,
) -> str:
    """Prompt asking the model to sequence phases around the bottleneck role."""
    activity_lines = "\n".join(
        f'  - "{name}": {man_days:.1f} man-days' for name, man_days in sorted(activity_man_days.items())
    )
    # stable sort keeps input order among equal durations
    by_duration = sorted(durations_per_role.items(), key=lambda kv: kv[1], reverse=True)
    role_duration_lines = "\n".join(
        f"  - {role}: Requires a minimum of {days} working days." for role, days in by_duration
    )
    bottleneck_role = by_duration[0][0] if by_duration and by_duration[0][0].strip() else "primary role"

    return TIMELINE_ESTIMATOR_PROMPT.format(
        team_type_name=team_type_name,
        activity_lines=activity_lines,
        role_duration_lines=role_duration_lines,
        bottleneck_role=bottleneck_role,
        duration_anchor=duration_anchor,
        expected_phases=", ".join(f"'{name}'" for name in activity_man_days),
        example_total=duration_anchor + 15,
    )
