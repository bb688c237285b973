"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from presales_engine.components.assessments.models import (
    AssessmentItem,
    AssessmentSection,
    ProjectAssessment,
    ProjectTemplate,
    TemplateItem,
    TemplateSection,
)
from presales_engine.components.assessments.store import ProjectAssessmentStore
from presales_engine.components.base.config import Settings
from presales_engine.components.configuration.models import (
    EstimationColumnRoleMapping,
    ItemActivityMapping,
    PresalesConfiguration,
    TeamType,
    TeamTypeRole,
)
from presales_engine.components.configuration.store import ConfigurationStore
from presales_engine.components.jobs.store import AssessmentJobStore
from presales_engine.components.timeline_estimation.store import TimelineEstimationStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every data path into a temporary directory."""
    return Settings(
        data_jobs_path=str(tmp_path / "jobs"),
        data_assessments_path=str(tmp_path / "assessments"),
        data_estimations_path=str(tmp_path / "timeline_estimations"),
        data_uploads_path=str(tmp_path / "uploads"),
        presales_configuration_file=str(tmp_path / "config" / "presales_configuration.json"),
        timeline_references_file=str(tmp_path / "config" / "timeline_references.json"),
        worker_error_delay_seconds=0.01,
        recover_jobs_on_startup=True,
    )


@pytest.fixture
def mock_llm() -> AsyncMock:
    """LLM client double; tests set `generate.return_value` or `side_effect`."""
    client = AsyncMock()
    client.generate = AsyncMock(return_value="{}")
    client.verify_connection = AsyncMock(return_value=False)
    return client


@pytest.fixture
def sample_template() -> ProjectTemplate:
    return ProjectTemplate(
        id=7,
        template_name="Web Application",
        estimation_columns=["BE", "FE", "QA"],
        sections=[
            TemplateSection(
                section_name="Setup",
                type="Project-Level",
                items=[TemplateItem(item_id="1.1", item_name="System Setup", item_detail="Environments")],
            ),
            TemplateSection(section_name="Features", type="AI-Generated", items=[]),
        ],
    )


@pytest.fixture
def sample_configuration(sample_template: ProjectTemplate) -> PresalesConfiguration:
    return PresalesConfiguration(
        item_activities=[
            ItemActivityMapping(item_name="Login API", activity_name="Development"),
            ItemActivityMapping(item_name="Regression Testing", activity_name="Testing"),
        ],
        estimation_column_roles=[
            EstimationColumnRoleMapping(estimation_column="BE", role_name="Dev Senior"),
            EstimationColumnRoleMapping(estimation_column="QA", role_name="QA"),
        ],
        team_types=[
            TeamType(
                id=1,
                name="Small",
                min_man_days=0,
                max_man_days=20,
                roles=[TeamTypeRole(role_name="Dev Senior", headcount=1.0)],
            ),
            TeamType(
                id=2,
                name="Medium",
                min_man_days=20,
                max_man_days=0,
                roles=[
                    TeamTypeRole(role_name="Dev Senior", headcount=1.0),
                    TeamTypeRole(role_name="QA", headcount=0.5),
                ],
            ),
        ],
        templates=[sample_template],
    )


@pytest.fixture
def completed_assessment() -> ProjectAssessment:
    """Assessment worth 40 BE man-days and 10 QA man-days."""
    return ProjectAssessment(
        id=11,
        template_id=7,
        template_name="Web Application",
        project_name="Customer Portal",
        status="Completed",
        sections=[
            AssessmentSection(
                section_name="Features",
                items=[
                    AssessmentItem(item_id="ai-1", item_name="Login API", is_needed=True, estimates={"BE": 320.0}),
                    AssessmentItem(
                        item_id="ai-2", item_name="Regression Testing", is_needed=True, estimates={"QA": 80.0}
                    ),
                    AssessmentItem(item_id="ai-3", item_name="Chat Widget", is_needed=False, estimates={"FE": 40.0}),
                ],
            )
        ],
    )


@pytest.fixture
def job_store(settings: Settings) -> AssessmentJobStore:
    return AssessmentJobStore(Path(settings.data_jobs_path))


@pytest.fixture
def assessment_store(settings: Settings) -> ProjectAssessmentStore:
    return ProjectAssessmentStore(Path(settings.data_assessments_path))


@pytest.fixture
def estimation_store(settings: Settings) -> TimelineEstimationStore:
    return TimelineEstimationStore(Path(settings.data_estimations_path))


@pytest.fixture
def configuration_store(settings: Settings, sample_configuration: PresalesConfiguration) -> ConfigurationStore:
    """Configuration store backed by files written synchronously for the test."""
    config_file = Path(settings.presales_configuration_file)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(sample_configuration.model_dump_json(indent=2), encoding="utf-8")
    Path(settings.timeline_references_file).write_text(json.dumps([]), encoding="utf-8")
    return ConfigurationStore(config_file, Path(settings.timeline_references_file))
