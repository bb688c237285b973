"""Tests for assessment job status, step and enum decoding."""

from datetime import datetime, timezone

import pytest

from presales_engine.components.jobs.models import (
    AnalysisMode,
    AssessmentJob,
    JobStatus,
    OutputLanguage,
    PipelineStage,
    parse_analysis_mode,
    parse_job_status,
    parse_output_language,
    step_for,
)


@pytest.mark.parametrize(
    "status,stage,expected",
    [
        (JobStatus.PENDING, None, 1),
        (JobStatus.PROCESSING, PipelineStage.DOCUMENT_ANALYSIS, 2),
        (JobStatus.PROCESSING, PipelineStage.ITEM_GENERATION, 3),
        (JobStatus.PROCESSING, PipelineStage.FINAL_ANALYSIS, 5),
        (JobStatus.COMPLETED, None, 6),
        (JobStatus.FAILED, PipelineStage.EFFORT_ESTIMATION, 4),
    ],
)
def test_step_for(status, stage, expected):
    assert step_for(status, stage) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Processing", JobStatus.PROCESSING),
        ("completed", JobStatus.COMPLETED),
        ("GenerationInProgress", JobStatus.PROCESSING),
        ("Complete", JobStatus.COMPLETED),
        ("FailedEstimation", JobStatus.FAILED),
        (3, JobStatus.FAILED),
        ("1", JobStatus.PROCESSING),
        (42, JobStatus.PENDING),
        ("Exploded", JobStatus.PENDING),
        (None, JobStatus.PENDING),
    ],
)
def test_parse_job_status(value, expected):
    assert parse_job_status(value) == expected


def test_parse_mode_and_language_are_lenient():
    assert parse_analysis_mode("strict") == AnalysisMode.STRICT
    assert parse_analysis_mode(1) == AnalysisMode.STRICT
    assert parse_analysis_mode("creative") == AnalysisMode.INTERPRETIVE
    assert parse_output_language("INDONESIAN") == OutputLanguage.INDONESIAN
    assert parse_output_language("") == OutputLanguage.ENGLISH


def test_persisted_legacy_values_load():
    job = AssessmentJob.model_validate(
        {"id": 3, "status": "EstimationInProgress", "analysis_mode": 1, "output_language": "klingon"}
    )

    assert job.status == JobStatus.PROCESSING
    assert job.analysis_mode == AnalysisMode.STRICT
    assert job.output_language == OutputLanguage.ENGLISH


def test_stage_lifecycle_advances_step():
    job = AssessmentJob(id=1)

    job.mark_stage_started(PipelineStage.DOCUMENT_ANALYSIS)
    job.mark_stage_completed(PipelineStage.DOCUMENT_ANALYSIS)
    job.mark_stage_started(PipelineStage.ITEM_GENERATION)

    assert job.status == JobStatus.PROCESSING
    assert job.step == 3
    assert job.next_stage() == PipelineStage.ITEM_GENERATION

    job.mark_failed("model unavailable")
    assert job.status == JobStatus.FAILED
    assert job.step == 3
    assert job.last_error == "model unavailable"
    assert job.is_terminal


def test_step_never_decreases_on_retry():
    job = AssessmentJob(id=1, step=4, completed_stages=[PipelineStage.DOCUMENT_ANALYSIS])

    job.mark_stage_started(PipelineStage.ITEM_GENERATION)

    assert job.step == 4
    assert job.last_error is None


def test_completion():
    job = AssessmentJob(id=1, completed_stages=list(PipelineStage))

    assert job.next_stage() is None
    job.mark_completed()
    assert job.step == 6
    assert job.current_stage is None


def test_reset_for_retry_keeps_completed_stages():
    job = AssessmentJob(id=1)
    job.mark_stage_started(PipelineStage.DOCUMENT_ANALYSIS)
    job.mark_stage_completed(PipelineStage.DOCUMENT_ANALYSIS)
    job.mark_stage_started(PipelineStage.ITEM_GENERATION)
    job.mark_failed("model unavailable")

    job.reset_for_retry()

    assert job.status == JobStatus.PENDING
    assert job.step == 1
    assert job.current_stage is None
    assert job.last_error is None
    assert job.completed_stages == [PipelineStage.DOCUMENT_ANALYSIS]
    assert job.next_stage() == PipelineStage.ITEM_GENERATION


def test_timestamps_without_offset_are_utc():
    job = AssessmentJob.model_validate(
        {"id": 1, "created_at": "2024-01-01T00:00:00", "modified_at": "2024-01-01T08:15:00"}
    )

    assert job.created_at.tzinfo == timezone.utc
    assert job.modified_at == datetime(2024, 1, 1, 8, 15, tzinfo=timezone.utc)
    assert job.modified_at <= datetime.now(timezone.utc)
