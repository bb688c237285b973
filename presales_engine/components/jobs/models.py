"""
Assessment job models.

Status is the source of truth for a job's progress; `step` is a 1-based
progress indicator derived from the status and the current pipeline stage.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, field_validator

from presales_engine.components.assessments.models import (
    EffortEstimationResult,
    ProjectAssessment,
    ProjectTemplate,
)

TEnum = TypeVar("TEnum", bound=Enum)


class JobStatus(str, Enum):
    """Assessment job status states."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PipelineStage(str, Enum):
    """Ordered pipeline stages."""

    DOCUMENT_ANALYSIS = "document_analysis"
    ITEM_GENERATION = "item_generation"
    EFFORT_ESTIMATION = "effort_estimation"
    FINAL_ANALYSIS = "final_analysis"


class AnalysisMode(str, Enum):
    INTERPRETIVE = "Interpretive"
    STRICT = "Strict"


class OutputLanguage(str, Enum):
    ENGLISH = "English"
    INDONESIAN = "Indonesian"


STAGE_ORDER: List[PipelineStage] = list(PipelineStage)

# Status names written by older versions of the job table
LEGACY_STATUS_NAMES = {
    "generationinprogress": JobStatus.PROCESSING,
    "estimationinprogress": JobStatus.PROCESSING,
    "generationcomplete": JobStatus.PROCESSING,
    "complete": JobStatus.COMPLETED,
    "failedgeneration": JobStatus.FAILED,
    "failedestimation": JobStatus.FAILED,
}


def _parse_enum(value: Any, enum_type: Type[TEnum], default: TEnum) -> TEnum:
    """Decode a persisted enum value, returning `default` instead of raising."""
    if isinstance(value, enum_type):
        return value
    if isinstance(value, bool) or value is None:
        return default
    members = list(enum_type)
    if isinstance(value, int):
        return members[value] if 0 <= value < len(members) else default

    text = str(value).strip()
    if not text:
        return default
    if text.isdigit():
        index = int(text)
        return members[index] if index < len(members) else default

    key = text.replace("_", "").replace(" ", "").lower()
    for member in members:
        if key in (member.value.replace("_", "").lower(), member.name.replace("_", "").lower()):
            return member
    return default


def parse_job_status(value: Any) -> JobStatus:
    """Decode a job status; unknown values become `Pending`."""
    if isinstance(value, str):
        legacy = LEGACY_STATUS_NAMES.get(value.strip().replace("_", "").lower())
        if legacy is not None:
            return legacy
    return _parse_enum(value, JobStatus, JobStatus.PENDING)


def parse_analysis_mode(value: Any) -> AnalysisMode:
    """Decode an analysis mode; unknown values become `Interpretive`."""
    return _parse_enum(value, AnalysisMode, AnalysisMode.INTERPRETIVE)


def parse_output_language(value: Any) -> OutputLanguage:
    """Decode an output language; unknown values become `English`."""
    return _parse_enum(value, OutputLanguage, OutputLanguage.ENGLISH)


def step_for(status: JobStatus, stage: Optional[PipelineStage] = None) -> int:
    """Progress step for a status/stage pair.

    Pending is 1, each stage of a running job advances the step by one,
    Completed is one past the last stage and Failed keeps the step of the
    stage that failed.
    """
    if status == JobStatus.PENDING:
        return 1
    if status == JobStatus.COMPLETED:
        return 2 + len(STAGE_ORDER)
    if stage is None:
        return 1 if status == JobStatus.FAILED else 2
    return 2 + STAGE_ORDER.index(stage)


class AssessmentJob(BaseModel):
    """Persisted state of one assessment pipeline run."""

    id: int = Field(..., description="Sequential job identifier")
    project_name: str = ""
    template_id: int = 0
    template_name: str = ""
    analysis_mode: AnalysisMode = AnalysisMode.INTERPRETIVE
    output_language: OutputLanguage = OutputLanguage.ENGLISH

    status: JobStatus = JobStatus.PENDING
    step: int = 1
    current_stage: Optional[PipelineStage] = None
    completed_stages: List[PipelineStage] = Field(default_factory=list)

    # Scope document
    scope_document_path: str = ""
    scope_document_mime_type: str = ""
    scope_document_has_manhour: bool = False
    detected_scope_manhour: Optional[bool] = Field(None, description="None when detection was inconclusive")
    detected_manhour_notes: str = ""

    # Serialized stage inputs and outputs
    original_template_json: Optional[str] = None
    reference_assessments_json: Optional[str] = None
    reference_documents_json: Optional[str] = None
    raw_generation_response: Optional[str] = None
    generated_items_json: Optional[str] = None
    raw_estimation_response: Optional[str] = None
    raw_manual_assessment_json: Optional[str] = None
    final_analysis_json: Optional[str] = None

    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    modified_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> JobStatus:
        return parse_job_status(value)

    @field_validator("analysis_mode", mode="before")
    @classmethod
    def _lenient_mode(cls, value: Any) -> AnalysisMode:
        return parse_analysis_mode(value)

    @field_validator("output_language", mode="before")
    @classmethod
    def _lenient_language(cls, value: Any) -> OutputLanguage:
        return parse_output_language(value)

    @field_validator("created_at", "modified_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # rows written without an offset are UTC
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def next_stage(self) -> Optional[PipelineStage]:
        """First stage not yet completed, None when every stage is done."""
        for stage in STAGE_ORDER:
            if stage not in self.completed_stages:
                return stage
        return None

    def sync_step_with_status(self) -> None:
        if self.status == JobStatus.PENDING:
            self.step = 1
        else:
            self.step = max(self.step, step_for(self.status, self.current_stage))

    def touch(self) -> None:
        self.modified_at = datetime.now(timezone.utc)

    def mark_stage_started(self, stage: PipelineStage) -> None:
        self.status = JobStatus.PROCESSING
        self.current_stage = stage
        self.last_error = None
        self.sync_step_with_status()
        self.touch()

    def mark_stage_completed(self, stage: PipelineStage) -> None:
        if stage not in self.completed_stages:
            self.completed_stages.append(stage)
        self.touch()

    def mark_failed(self, message: str) -> None:
        self.status = JobStatus.FAILED
        self.last_error = message
        self.sync_step_with_status()
        self.touch()

    def mark_completed(self) -> None:
        self.status = JobStatus.COMPLETED
        self.current_stage = None
        self.last_error = None
        self.sync_step_with_status()
        self.touch()

    def reset_for_retry(self) -> None:
        """Return a failed job to Pending.

        Completed stages are kept, so the next run resumes at the stage that
        failed.
        """
        self.status = JobStatus.PENDING
        self.current_stage = None
        self.last_error = None
        self.sync_step_with_status()
        self.touch()


class AssessmentJobCreate(BaseModel):
    """Intake request for a new assessment job."""

    project_name: str = Field(..., min_length=1)
    template_id: int
    analysis_mode: AnalysisMode = AnalysisMode.INTERPRETIVE
    output_language: OutputLanguage = OutputLanguage.ENGLISH
    scope_document_path: str = Field(..., min_length=1)
    scope_document_mime_type: str = ""
    scope_document_has_manhour: bool = False
    template: Optional[ProjectTemplate] = Field(None, description="Loaded from configuration when omitted")
    reference_assessments: List[ProjectAssessment] = Field(default_factory=list)
    reference_documents: List[Dict[str, Any]] = Field(default_factory=list)
    manual_assessment: Optional[EffortEstimationResult] = Field(None, description="Manual estimates used instead of the model")

    @field_validator("analysis_mode", mode="before")
    @classmethod
    def _lenient_mode(cls, value: Any) -> AnalysisMode:
        return parse_analysis_mode(value)

    @field_validator("output_language", mode="before")
    @classmethod
    def _lenient_language(cls, value: Any) -> OutputLanguage:
        return parse_output_language(value)


class AssessmentJobSummary(BaseModel):
    """Status-polling view of a job."""

    id: int
    project_name: str
    template_name: str
    status: JobStatus
    step: int
    current_stage: Optional[PipelineStage] = None
    last_error: Optional[str] = None
    created_at: datetime
    modified_at: datetime
