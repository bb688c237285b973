"""Tests for timeline estimation orchestration."""

import json

import pytest

from presales_engine.components.base.exceptions import (
    LlmTimeoutError,
    LlmUnavailableError,
    NoEstimableDataError,
    NoTeamTypeConfiguredError,
    NotFoundError,
    PreconditionFailedError,
)
from presales_engine.components.configuration.models import PresalesConfiguration
from presales_engine.components.timeline_estimation.service import (
    DEFAULT_SEQUENCING_NOTES,
    TimelineEstimatorService,
    map_ai_result,
    synthesize_roles,
)
from presales_engine.components.timeline_estimation.models import AiTimelineEstimationResult
from presales_engine.utils import llm_client as llm_client_module


@pytest.fixture
def service(assessment_store, configuration_store, estimation_store, mock_llm) -> TimelineEstimatorService:
    return TimelineEstimatorService(
        assessment_store,
        configuration_store,
        estimation_store,
        llm_client=mock_llm,
    )


def test_service_requires_a_model_client(assessment_store, configuration_store, estimation_store):
    with pytest.raises(TypeError):
        TimelineEstimatorService(assessment_store, configuration_store, estimation_store)

    assert not hasattr(llm_client_module, "get_llm_client")


@pytest.mark.asyncio
async def test_ai_path_builds_record(service, assessment_store, estimation_store, completed_assessment, mock_llm):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.return_value = (
        "```json\n"
        + json.dumps(
            {
                "projectScale": "Medium",
                "totalDurationDays": 55,
                "sequencingNotes": "Anchored by Dev Senior.",
                "phases": [
                    {"phaseName": "Development", "durationDays": 40, "sequenceType": "serial"},
                    {"phaseName": "Testing", "durationDays": 0, "sequenceType": "overlapping"},
                    {"phaseName": "  ", "durationDays": 5},
                ],
            }
        )
        + "\n```"
    )

    record = await service.generate(completed_assessment.id)

    assert record.estimation_source == "ai"
    assert record.fallback_reason == ""
    assert record.project_scale == "Medium"
    assert record.total_duration_days == 55
    assert [(p.phase_name, p.duration_days, p.sequence_type) for p in record.phases] == [
        ("Development", 40, "Serial"),
        ("Testing", 1, "Serial"),
    ]
    assert [(r.role, r.total_man_days, r.estimated_headcount) for r in record.roles] == [
        ("Dev Senior", 40.0, 0.7),
        ("QA", 10.0, 0.2),
    ]
    assert record.raw_input_data.duration_anchor == 40
    assert record.raw_input_data.durations_per_role == {"Dev Senior": 40, "QA": 20}
    assert record.raw_input_data.selected_team_type.name == "Medium"
    assert record.project_name == "Customer Portal"

    prompt = mock_llm.generate.call_args.args[0]
    assert "MUST be >= **40 days**" in prompt
    assert prompt.index("Dev Senior: Requires a minimum of 40") < prompt.index("QA: Requires a minimum of 20")
    stored = await estimation_store.get(completed_assessment.id)
    assert stored.model_dump() == record.model_dump()


@pytest.mark.asyncio
async def test_ai_duration_is_raised_to_anchor(service, assessment_store, completed_assessment, mock_llm):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.return_value = '{"projectScale": "", "totalDurationDays": 12}'

    record = await service.generate(completed_assessment.id)

    assert record.total_duration_days == 40
    assert record.project_scale == "Unknown"
    assert record.sequencing_notes == DEFAULT_SEQUENCING_NOTES


@pytest.mark.asyncio
async def test_timeout_falls_back(service, assessment_store, completed_assessment, mock_llm):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.side_effect = LlmTimeoutError("LLM call exceeded deadline", component="llm")

    record = await service.generate(completed_assessment.id)

    # no references: 50 man-days -> "Short", ceil(50) days
    assert record.estimation_source == "fallback"
    assert record.project_scale == "Short"
    assert record.total_duration_days == 50
    assert record.fallback_reason.startswith("LlmTimeoutError")
    assert record.raw_input_data.duration_anchor == 40


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["I cannot help with that.", "", '{"totalDurationDays": "soon"}'])
async def test_unusable_answer_falls_back(service, assessment_store, completed_assessment, mock_llm, raw):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.return_value = raw

    record = await service.generate(completed_assessment.id)

    assert record.estimation_source == "fallback"
    assert "MalformedResponseError" in record.fallback_reason


@pytest.mark.asyncio
async def test_unavailable_model_falls_back(service, assessment_store, completed_assessment, mock_llm):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.side_effect = LlmUnavailableError("connection refused", component="llm")

    record = await service.generate(completed_assessment.id)

    assert record.estimation_source == "fallback"


@pytest.mark.asyncio
async def test_missing_assessment(service):
    with pytest.raises(NotFoundError):
        await service.generate(404)


@pytest.mark.asyncio
async def test_draft_assessment_is_rejected(service, assessment_store, completed_assessment):
    completed_assessment.status = "Draft"
    await assessment_store.save(completed_assessment)

    with pytest.raises(PreconditionFailedError):
        await service.generate(completed_assessment.id)


@pytest.mark.asyncio
async def test_no_estimable_data_persists_nothing(service, assessment_store, estimation_store, completed_assessment, mock_llm):
    for section in completed_assessment.sections:
        for item in section.items:
            item.is_needed = False
    await assessment_store.save(completed_assessment)

    with pytest.raises(NoEstimableDataError):
        await service.generate(completed_assessment.id)

    assert await estimation_store.get(completed_assessment.id) is None
    mock_llm.generate.assert_not_called()


@pytest.mark.asyncio
async def test_missing_team_types_is_fatal(service, assessment_store, configuration_store, completed_assessment):
    await assessment_store.save(completed_assessment)
    await configuration_store.save_configuration(PresalesConfiguration())

    with pytest.raises(NoTeamTypeConfiguredError):
        await service.generate(completed_assessment.id)


@pytest.mark.asyncio
async def test_regeneration_replaces_record(service, assessment_store, completed_assessment, mock_llm):
    await assessment_store.save(completed_assessment)
    mock_llm.generate.return_value = '{"projectScale": "Medium", "totalDurationDays": 60}'
    await service.generate(completed_assessment.id)

    mock_llm.generate.return_value = '{"projectScale": "Long", "totalDurationDays": 75}'
    await service.generate(completed_assessment.id)

    record = await service.get(completed_assessment.id)
    summaries = await service.list_summaries()
    assert record.project_scale == "Long"
    assert record.total_duration_days == 75
    assert [s.assessment_id for s in summaries] == [completed_assessment.id]


@pytest.mark.asyncio
async def test_get_missing_record(service):
    with pytest.raises(NotFoundError):
        await service.get(1)


def test_synthesized_headcount_is_floored_at_one_tenth():
    roles = synthesize_roles({"b": 1, "A": 30, "none": 0}, 400)

    assert [(r.role, r.estimated_headcount) for r in roles] == [("A", 0.1), ("b", 0.1)]


def test_map_ai_result_clamps_duration():
    record = map_ai_result(AiTimelineEstimationResult(total_duration_days=-5), duration_anchor=1)

    assert record.total_duration_days == 1
    assert record.project_scale == "Unknown"
