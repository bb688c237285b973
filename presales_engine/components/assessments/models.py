from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TemplateItem(BaseModel):
    item_id: str
    item_name: str
    item_detail: str = ""


class TemplateSection(BaseModel):
    section_name: str
    type: str = "Project-Level"
    items: List[TemplateItem] = Field(default_factory=list)


class ProjectTemplate(BaseModel):
    """Assessment template: sections of items and the estimation columns."""
    id: Optional[int] = None
    template_name: str = ""
    estimation_columns: List[str] = Field(default_factory=list)
    sections: List[TemplateSection] = Field(default_factory=list)


class AssessmentItem(BaseModel):
    item_id: str
    item_name: str = ""
    item_detail: str = ""
    is_needed: bool = False
    # estimation column -> hours
    estimates: Dict[str, Optional[float]] = Field(default_factory=dict)


class AssessmentSection(BaseModel):
    section_name: str
    items: List[AssessmentItem] = Field(default_factory=list)


class ProjectAssessment(BaseModel):
    """Assessment produced by the pipeline and consumed by the estimator."""
    id: Optional[int] = None
    template_id: int = 0
    template_name: str = ""
    project_name: str = ""
    status: str = "Draft"
    sections: List[AssessmentSection] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_modified_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return (self.status or "").strip().lower() == "completed"


# Shapes exchanged with the language model (camelCase on the wire)

class GeneratedItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_id: Optional[str] = None
    section_name: Optional[str] = ""
    item_name: Optional[str] = ""
    item_detail: Optional[str] = ""


class ItemGenerationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[GeneratedItem] = Field(default_factory=list)


class ItemEstimate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_id: str
    is_needed: Optional[bool] = True
    estimates: Dict[str, Optional[float]] = Field(default_factory=dict)


class EffortEstimationResult(BaseModel):
    """Per-item estimates, produced by the model or supplied manually."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: List[ItemEstimate] = Field(default_factory=list)
