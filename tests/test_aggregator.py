"""Tests for effort aggregation over completed assessments."""

import pytest

from presales_engine.components.assessments.aggregator import AssessmentTaskAggregator
from presales_engine.components.assessments.models import AssessmentItem, AssessmentSection, ProjectAssessment
from presales_engine.components.configuration.models import (
    EstimationColumnRoleMapping,
    ItemActivityMapping,
    PresalesConfiguration,
)


@pytest.fixture
def aggregator() -> AssessmentTaskAggregator:
    return AssessmentTaskAggregator()


def test_column_effort_counts_needed_items_only(aggregator, completed_assessment):
    assert aggregator.aggregate_estimation_column_effort(completed_assessment) == {"BE": 40.0, "QA": 10.0}


def test_activity_man_days(aggregator, completed_assessment, sample_configuration):
    result = aggregator.calculate_activity_man_days(completed_assessment, sample_configuration)

    assert result == {"Development": 40.0, "Testing": 10.0}


def test_role_man_days(aggregator, completed_assessment, sample_configuration):
    result = aggregator.calculate_role_man_days(completed_assessment, sample_configuration)

    assert result == {"Dev Senior": 40.0, "QA": 10.0}


def test_unmapped_items_and_columns():
    assessment = ProjectAssessment(
        status="Completed",
        sections=[
            AssessmentSection(
                section_name="S",
                items=[
                    AssessmentItem(item_id="1", item_name="Reporting", is_needed=True, estimates={"FE": 16, "BE": None}),
                ],
            )
        ],
    )
    configuration = PresalesConfiguration()
    aggregator = AssessmentTaskAggregator()

    assert aggregator.calculate_activity_man_days(assessment, configuration) == {"Unmapped": 2.0}
    assert aggregator.calculate_role_man_days(assessment, configuration) == {"Unassigned": 2.0}


def test_column_mapped_to_several_roles_is_split_evenly():
    assessment = ProjectAssessment(
        status="Completed",
        sections=[
            AssessmentSection(
                section_name="S",
                items=[AssessmentItem(item_id="1", item_name="API", is_needed=True, estimates={"be": 80})],
            )
        ],
    )
    configuration = PresalesConfiguration(
        item_activities=[ItemActivityMapping(item_name="api", activity_name="Development")],
        estimation_column_roles=[
            EstimationColumnRoleMapping(estimation_column="BE", role_name="Dev Senior"),
            EstimationColumnRoleMapping(estimation_column="BE", role_name="Dev Junior"),
            EstimationColumnRoleMapping(estimation_column="be", role_name="dev senior"),
        ],
    )
    aggregator = AssessmentTaskAggregator()

    assert aggregator.calculate_role_man_days(assessment, configuration) == {"Dev Senior": 5.0, "Dev Junior": 5.0}
    assert aggregator.calculate_activity_man_days(assessment, configuration) == {"Development": 10.0}
