"""End-to-end tests for the assessment pipeline with a mocked model."""

import json
from pathlib import Path

import pytest

from presales_engine.components.assessments.models import (
    EffortEstimationResult,
    ItemEstimate,
    TemplateSection,
)
from presales_engine.components.jobs.models import AssessmentJob, JobStatus, PipelineStage
from presales_engine.components.jobs.queue import JobQueue
from presales_engine.components.jobs.service import AssessmentJobService
from presales_engine.components.pipeline.service import PipelineOrchestrator
from presales_engine.components.pipeline.stages import AssessmentPipelineStages

DOCUMENT_ANALYSIS_RESPONSE = '{"hasManhour": false, "notes": "No hour figures found."}'

GENERATION_RESPONSE = json.dumps(
    {
        "items": [
            {"sectionName": "features", "itemName": "Login API", "itemDetail": "OAuth login"},
            {"sectionName": "Elsewhere", "itemName": "Regression Testing"},
            {"sectionName": "Features", "itemName": "   "},
        ]
    }
)

ESTIMATION_RESPONSE = """Here are the estimates:
```json
{"items": [
  {"itemId": "1.1", "isNeeded": true, "estimates": {"be": 16, "qa": -3}},
  {"itemId": "AI-1", "estimates": {"BE": 320}},
  {"itemId": "ai-2", "isNeeded": false, "estimates": {"QA": 8}},
  {"itemId": "unknown", "estimates": {"BE": 99}},
]}
```"""


@pytest.fixture
def scope_document(tmp_path: Path) -> Path:
    path = tmp_path / "scope.txt"
    path.write_text("Customer portal with OAuth login and a regression suite.", encoding="utf-8")
    return path


@pytest.fixture
def stages(assessment_store, mock_llm) -> AssessmentPipelineStages:
    return AssessmentPipelineStages(assessment_store, llm_client=mock_llm)


@pytest.fixture
def orchestrator(job_store, stages) -> PipelineOrchestrator:
    return PipelineOrchestrator(job_store, stages)


async def _insert_job(job_store, template, scope_document: Path, **overrides) -> AssessmentJob:
    job = AssessmentJob(
        id=0,
        project_name="Customer Portal",
        template_id=template.id,
        template_name=template.template_name,
        scope_document_path=str(scope_document),
        original_template_json=template.model_dump_json(),
        **overrides,
    )
    return await job_store.insert(job)


@pytest.mark.asyncio
async def test_full_run_completes_job(orchestrator, job_store, assessment_store, sample_template, scope_document, mock_llm):
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, GENERATION_RESPONSE, ESTIMATION_RESPONSE]
    job = await _insert_job(job_store, sample_template, scope_document)

    result = await orchestrator.process(job.id)

    assert result.status == JobStatus.COMPLETED
    assert result.step == 6
    assert [m["role"] for m in result.messages] == [
        "document_analysis",
        "item_generation",
        "effort_estimation",
        "final_analysis",
        "complete",
    ]

    stored = await job_store.get_required(job.id)
    assert stored.status == JobStatus.COMPLETED
    assert stored.step == 6
    assert stored.completed_stages == list(PipelineStage)
    assert stored.detected_scope_manhour is False
    assert stored.raw_generation_response == GENERATION_RESPONSE
    assert stored.last_error is None

    generated = json.loads(stored.generated_items_json)
    assert [(g["item_id"], g["section_name"], g["item_name"]) for g in generated] == [
        ("ai-1", "Features", "Login API"),
        ("ai-2", "Features", "Regression Testing"),
    ]

    analysis = EffortEstimationResult.model_validate_json(stored.final_analysis_json)
    assert [item.item_id for item in analysis.items] == ["1.1", "ai-1", "ai-2"]
    assert analysis.items[0].estimates == {"BE": 16.0, "FE": None, "QA": 0.0}

    assessment = await assessment_store.get(job.id)
    assert assessment.is_completed
    assert assessment.project_name == "Customer Portal"
    items = {item.item_id: item for section in assessment.sections for item in section.items}
    assert items["ai-1"].is_needed is True
    assert items["ai-1"].estimates["BE"] == 320.0
    assert items["ai-2"].is_needed is False
    assert [s.section_name for s in assessment.sections] == ["Setup", "Features"]


@pytest.mark.asyncio
async def test_malformed_generation_fails_job(orchestrator, job_store, assessment_store, sample_template, scope_document, mock_llm):
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, "I am unable to list items."]
    job = await _insert_job(job_store, sample_template, scope_document)

    result = await orchestrator.process(job.id)

    stored = await job_store.get_required(job.id)
    assert result.status == JobStatus.FAILED
    assert stored.status == JobStatus.FAILED
    assert stored.step == 3
    assert stored.current_stage == PipelineStage.ITEM_GENERATION
    assert stored.last_error == "I am unable to list items."
    assert stored.raw_generation_response == "I am unable to list items."
    assert stored.generated_items_json is None
    assert stored.completed_stages == [PipelineStage.DOCUMENT_ANALYSIS]
    assert await assessment_store.get(job.id) is None


@pytest.mark.asyncio
async def test_failed_job_resumes_at_failed_stage(orchestrator, job_store, sample_template, scope_document, mock_llm):
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, "no json"]
    job = await _insert_job(job_store, sample_template, scope_document)
    await orchestrator.process(job.id)

    mock_llm.generate.reset_mock()
    mock_llm.generate.side_effect = [GENERATION_RESPONSE, ESTIMATION_RESPONSE]
    result = await orchestrator.process(job.id)

    assert result.status == JobStatus.COMPLETED
    assert mock_llm.generate.await_count == 2
    assert result.messages[0]["role"] == "item_generation"
    assert (await job_store.get_required(job.id)).last_error is None


@pytest.mark.asyncio
async def test_missing_scope_document_fails_first_stage(orchestrator, job_store, sample_template, tmp_path, mock_llm):
    job = await _insert_job(job_store, sample_template, tmp_path / "missing.docx")

    await orchestrator.process(job.id)

    stored = await job_store.get_required(job.id)
    assert stored.status == JobStatus.FAILED
    assert stored.step == 2
    assert "Scope document not found" in stored.last_error
    mock_llm.generate.assert_not_called()


@pytest.mark.asyncio
async def test_manual_assessment_skips_the_model(orchestrator, job_store, assessment_store, sample_template, scope_document, mock_llm):
    sample_template.sections = [s for s in sample_template.sections if s.type == "Project-Level"]
    manual = EffortEstimationResult(items=[ItemEstimate(item_id="1.1", estimates={"be": 24})])
    job = await _insert_job(
        job_store,
        sample_template,
        scope_document,
        scope_document_has_manhour=True,
        raw_manual_assessment_json=manual.model_dump_json(by_alias=True),
    )

    result = await orchestrator.process(job.id)

    assert result.status == JobStatus.COMPLETED
    mock_llm.generate.assert_not_called()
    stored = await job_store.get_required(job.id)
    assert stored.detected_scope_manhour is True
    assert stored.generated_items_json == "[]"
    assessment = await assessment_store.get(job.id)
    assert assessment.sections[0].items[0].estimates == {"BE": 24.0, "FE": None, "QA": None}


@pytest.mark.asyncio
async def test_estimation_without_known_items_fails(orchestrator, job_store, sample_template, scope_document, mock_llm):
    unknown_items = '{"items": [{"itemId": "x-9", "estimates": {"BE": 8}}]}'
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, GENERATION_RESPONSE, unknown_items]
    job = await _insert_job(job_store, sample_template, scope_document)

    await orchestrator.process(job.id)

    stored = await job_store.get_required(job.id)
    assert stored.status == JobStatus.FAILED
    assert stored.step == 4
    assert stored.final_analysis_json is None
    assert stored.raw_estimation_response == unknown_items
    assert json.loads(stored.generated_items_json)[0]["item_id"] == "ai-1"


@pytest.mark.asyncio
async def test_completed_job_is_skipped(orchestrator, job_store, sample_template, scope_document, mock_llm):
    job = await _insert_job(job_store, sample_template, scope_document, status=JobStatus.COMPLETED)

    result = await orchestrator.process(job.id)

    assert result.status == JobStatus.COMPLETED
    mock_llm.generate.assert_not_called()


@pytest.mark.asyncio
async def test_inconclusive_detection_is_not_a_failure(stages, sample_template, scope_document, mock_llm):
    mock_llm.generate.return_value = "Maybe?"
    job = AssessmentJob(id=1, scope_document_path=str(scope_document))

    await stages.analyze_document(job)

    assert job.detected_scope_manhour is None
    assert "inconclusive" in job.detected_manhour_notes


@pytest.mark.asyncio
async def test_empty_generation_response_yields_no_items(stages, sample_template, scope_document, mock_llm):
    mock_llm.generate.return_value = "   "
    job = AssessmentJob(
        id=1,
        scope_document_path=str(scope_document),
        original_template_json=sample_template.model_dump_json(),
    )

    message = await stages.generate_items(job)

    assert job.generated_items_json == "[]"
    assert message == "Generated 0 item(s)"


@pytest.mark.asyncio
async def test_generated_ids_avoid_template_ids(stages, sample_template, scope_document, mock_llm):
    sample_template.sections.append(
        TemplateSection(section_name="Integrations", type="AI-Generated", items=[])
    )
    sample_template.sections[0].items[0].item_id = "ai-1"
    mock_llm.generate.return_value = json.dumps(
        {"items": [{"sectionName": "integrations", "itemName": "ERP Sync"}, {"itemName": "Audit Log"}]}
    )
    job = AssessmentJob(
        id=1,
        scope_document_path=str(scope_document),
        original_template_json=sample_template.model_dump_json(),
    )

    await stages.generate_items(job)

    generated = json.loads(job.generated_items_json)
    assert [(g["item_id"], g["section_name"]) for g in generated] == [
        ("ai-2", "Integrations"),
        ("ai-3", "Features"),
    ]


@pytest.mark.asyncio
async def test_malformed_estimation_keeps_raw_answer(orchestrator, job_store, sample_template, scope_document, mock_llm):
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, GENERATION_RESPONSE, "Estimates: BE about a week"]
    job = await _insert_job(job_store, sample_template, scope_document)

    await orchestrator.process(job.id)

    stored = await job_store.get_required(job.id)
    assert stored.status == JobStatus.FAILED
    assert stored.raw_estimation_response == "Estimates: BE about a week"
    assert stored.last_error == "Estimates: BE about a week"
    assert stored.completed_stages == [PipelineStage.DOCUMENT_ANALYSIS, PipelineStage.ITEM_GENERATION]


def test_stages_require_a_model_client(assessment_store):
    with pytest.raises(TypeError):
        AssessmentPipelineStages(assessment_store)


@pytest.mark.asyncio
async def test_retried_job_finishes_from_failed_stage(orchestrator, job_store, configuration_store, sample_template, scope_document, mock_llm):
    mock_llm.generate.side_effect = [DOCUMENT_ANALYSIS_RESPONSE, GENERATION_RESPONSE, "no json"]
    job = await _insert_job(job_store, sample_template, scope_document)
    await orchestrator.process(job.id)
    queue = JobQueue()
    service = AssessmentJobService(job_store, queue, configuration_store)

    retried = await service.retry_job(job.id)
    mock_llm.generate.reset_mock()
    mock_llm.generate.side_effect = [ESTIMATION_RESPONSE]
    result = await orchestrator.process(await queue.dequeue())

    assert retried.next_stage() == PipelineStage.EFFORT_ESTIMATION
    assert result.status == JobStatus.COMPLETED
    assert mock_llm.generate.await_count == 1
    assert result.messages[0]["role"] == "effort_estimation"
    assert (await job_store.get_required(job.id)).step == 6
