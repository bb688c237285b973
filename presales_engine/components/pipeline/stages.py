"""
Pipeline stage implementations.

Each stage reads what it needs from the job, writes its outputs back onto
the job and returns a short progress message. Persisting the job is left to
the workflow node that runs the stage.
"""

import json
from typing import Any, Awaitable, Callable, Dict, List

from pydantic import TypeAdapter

from presales_engine.components.assessments.models import (
    AssessmentItem,
    AssessmentSection,
    EffortEstimationResult,
    GeneratedItem,
    ItemEstimate,
    ItemGenerationResult,
    ProjectAssessment,
    ProjectTemplate,
    TemplateItem,
)
from presales_engine.components.assessments.store import ProjectAssessmentStore
from presales_engine.components.base.exceptions import MalformedResponseError, PreconditionFailedError
from presales_engine.components.base.logging import get_logger
from presales_engine.components.jobs.models import AnalysisMode, AssessmentJob, PipelineStage
from presales_engine.utils.ai_response import interpret_ai_response
from presales_engine.utils.llm_client import LlmClient
from .documents import load_scope_document
from .models import DocumentAnalysisResult
from .prompts import (
    DOCUMENT_ANALYSIS_PROMPT,
    EFFORT_ESTIMATION_INTERPRETIVE,
    EFFORT_ESTIMATION_PROMPT,
    EFFORT_ESTIMATION_STRICT,
    ITEM_GENERATION_INTERPRETIVE,
    ITEM_GENERATION_PROMPT,
    ITEM_GENERATION_STRICT,
    LANGUAGE_INSTRUCTIONS,
)

logger = get_logger("pipeline_stages")

AI_GENERATED_SECTION = "ai-generated"
COMPLETED_STATUS = "Completed"

_generated_items_adapter = TypeAdapter(List[GeneratedItem])
_references_adapter = TypeAdapter(List[ProjectAssessment])

StageHandler = Callable[[AssessmentJob], Awaitable[str]]


def build_augmented_template(template: ProjectTemplate, generated: List[GeneratedItem]) -> ProjectTemplate:
    """Copy of the template with generated items appended to their AI-Generated sections."""
    augmented = template.model_copy(deep=True)
    for section in augmented.sections:
        if section.type.lower() != AI_GENERATED_SECTION:
            continue
        for item in generated:
            if (item.section_name or "").lower() == section.section_name.lower():
                section.items.append(
                    TemplateItem(
                        item_id=item.item_id or "",
                        item_name=item.item_name or "",
                        item_detail=item.item_detail or "",
                    )
                )
    return augmented


def normalize_estimates(result: EffortEstimationResult, template: ProjectTemplate) -> EffortEstimationResult:
    """Keep estimates for known template items, keyed by the template's columns.

    Unknown item ids are dropped, column names are matched ignoring case,
    negative hours become 0.
    """
    known_ids = {
        item.item_id.lower(): item.item_id
        for section in template.sections
        for item in section.items
        if item.item_id
    }
    columns = list(dict.fromkeys(template.estimation_columns))

    normalized: Dict[str, ItemEstimate] = {}
    for item in result.items:
        item_id = known_ids.get((item.item_id or "").strip().lower())
        if item_id is None:
            continue

        by_key = {key.lower(): value for key, value in item.estimates.items()}
        if columns:
            estimates = {column: by_key.get(column.lower()) for column in columns}
        else:
            estimates = dict(item.estimates)
        estimates = {
            column: None if value is None else round(max(0.0, float(value)), 2)
            for column, value in estimates.items()
        }
        # last answer for an item wins
        normalized[item_id.lower()] = ItemEstimate(
            item_id=item_id,
            is_needed=True if item.is_needed is None else item.is_needed,
            estimates=estimates,
        )

    return EffortEstimationResult(items=list(normalized.values()))


def build_assessment(
    template: ProjectTemplate,
    analysis: EffortEstimationResult,
    job: AssessmentJob,
) -> ProjectAssessment:
    """Merge the augmented template with the per-item analysis into a completed assessment."""
    lookup = {item.item_id.lower(): item for item in analysis.items}
    columns = template.estimation_columns

    sections = []
    for section in template.sections:
        items = []
        for template_item in section.items:
            analyzed = lookup.get(template_item.item_id.lower())
            estimates = {column: None for column in columns}
            if analyzed is not None:
                estimates.update(analyzed.estimates)
            items.append(
                AssessmentItem(
                    item_id=template_item.item_id,
                    item_name=template_item.item_name,
                    item_detail=template_item.item_detail,
                    is_needed=bool(analyzed.is_needed) if analyzed is not None else False,
                    estimates=estimates,
                )
            )
        sections.append(AssessmentSection(section_name=section.section_name, items=items))

    return ProjectAssessment(
        id=job.id,
        template_id=template.id if template.id is not None else job.template_id,
        template_name=template.template_name or job.template_name,
        project_name=job.project_name,
        status=COMPLETED_STATUS,
        sections=sections,
    )


def _reference_documents(job: AssessmentJob) -> List[Dict[str, str]]:
    if not job.reference_documents_json:
        return []
    documents = []
    for document in json.loads(job.reference_documents_json):
        source = str(document.get("source") or "").strip()
        summary = str(document.get("summary") or "").strip()
        if source and summary:
            documents.append({"source": source, "summary": summary})
    return documents


def _load_template(job: AssessmentJob) -> ProjectTemplate:
    if not job.original_template_json:
        raise PreconditionFailedError(f"Job {job.id} has no template", component="pipeline")
    return ProjectTemplate.model_validate_json(job.original_template_json)


def _load_generated_items(job: AssessmentJob) -> List[GeneratedItem]:
    if not job.generated_items_json:
        return []
    return _generated_items_adapter.validate_json(job.generated_items_json)


class AssessmentPipelineStages:
    """The four pipeline stages, bound to their collaborators."""

    def __init__(
        self,
        assessment_store: ProjectAssessmentStore,
        llm_client: LlmClient,
    ):
        self.assessment_store = assessment_store
        self.llm = llm_client

    def handlers(self) -> Dict[PipelineStage, StageHandler]:
        return {
            PipelineStage.DOCUMENT_ANALYSIS: self.analyze_document,
            PipelineStage.ITEM_GENERATION: self.generate_items,
            PipelineStage.EFFORT_ESTIMATION: self.estimate_effort,
            PipelineStage.FINAL_ANALYSIS: self.finalize_analysis,
        }

    async def analyze_document(self, job: AssessmentJob) -> str:
        document_text = await load_scope_document(job.scope_document_path, job.scope_document_mime_type)

        if job.scope_document_has_manhour:
            job.detected_scope_manhour = True
            job.detected_manhour_notes = "Man-hour figures declared by the requester."
            return "Scope document flagged as containing man-hours"

        raw = await self.llm.generate(DOCUMENT_ANALYSIS_PROMPT.format(document_text=document_text), format="json")
        try:
            result = interpret_ai_response(raw, DocumentAnalysisResult, component_name="document_analysis")
        except MalformedResponseError as e:
            logger.warning("Man-hour detection inconclusive", job_id=job.id, error=e.message)
            job.detected_scope_manhour = None
            job.detected_manhour_notes = "Detection inconclusive: the model answer could not be interpreted."
            return "Man-hour detection inconclusive"

        job.detected_scope_manhour = result.has_manhour
        job.detected_manhour_notes = (result.notes or "").strip()
        return f"Man-hour figures detected: {result.has_manhour}"

    async def generate_items(self, job: AssessmentJob) -> str:
        template = _load_template(job)
        ai_sections = [s for s in template.sections if s.type.lower() == AI_GENERATED_SECTION]
        if not ai_sections:
            job.generated_items_json = "[]"
            return "Template has no AI-Generated sections"

        context = {
            "projectName": job.project_name,
            "sections": [
                {
                    "sectionName": section.section_name,
                    "existingItems": [
                        {"itemName": item.item_name, "itemDetail": item.item_detail} for item in section.items
                    ],
                }
                for section in ai_sections
            ],
            "referenceDocuments": _reference_documents(job),
        }
        strict = job.analysis_mode == AnalysisMode.STRICT
        reference_instruction = ""
        if context["referenceDocuments"]:
            reference_instruction = (
                " Use the provided knowledge base summaries only to clarify terminology; never introduce "
                "functionality that is absent from the scope document."
                if strict
                else " Leverage the provided knowledge base summaries when they clarify requirements."
            )
        prompt = ITEM_GENERATION_PROMPT.format(
            instructions=ITEM_GENERATION_STRICT if strict else ITEM_GENERATION_INTERPRETIVE,
            language_instruction=LANGUAGE_INSTRUCTIONS[job.output_language.value],
            reference_instruction=reference_instruction,
            context_json=json.dumps(context, indent=2),
            document_text=await load_scope_document(job.scope_document_path, job.scope_document_mime_type),
        )

        raw = await self.llm.generate(prompt, format="json")
        job.raw_generation_response = raw
        if not raw.strip():
            generated: List[GeneratedItem] = []
        else:
            try:
                result = interpret_ai_response(raw, ItemGenerationResult, component_name="item_generation")
            except MalformedResponseError:
                job.generated_items_json = None
                raise MalformedResponseError(raw, component="item_generation")
            generated = self._assign_items(result.items, template, ai_sections)

        job.generated_items_json = _generated_items_adapter.dump_json(generated, by_alias=False).decode()
        return f"Generated {len(generated)} item(s)"

    @staticmethod
    def _assign_items(items: List[GeneratedItem], template: ProjectTemplate, ai_sections: List[Any]) -> List[GeneratedItem]:
        """Place generated items into AI-Generated sections and give them unique ids."""
        section_names = {s.section_name.lower(): s.section_name for s in ai_sections}
        used_ids = {item.item_id.lower() for s in template.sections for item in s.items}

        assigned = []
        counter = 0
        for item in items:
            name = (item.item_name or "").strip()
            if not name:
                continue
            section = section_names.get((item.section_name or "").strip().lower(), ai_sections[0].section_name)
            counter += 1
            item_id = f"ai-{counter}"
            while item_id.lower() in used_ids:
                counter += 1
                item_id = f"ai-{counter}"
            used_ids.add(item_id.lower())
            assigned.append(
                GeneratedItem(item_id=item_id, section_name=section, item_name=name, item_detail=(item.item_detail or "").strip())
            )
        return assigned

    async def estimate_effort(self, job: AssessmentJob) -> str:
        template = build_augmented_template(_load_template(job), _load_generated_items(job))

        if job.raw_manual_assessment_json:
            job.raw_estimation_response = job.raw_manual_assessment_json
            result = EffortEstimationResult.model_validate_json(job.raw_manual_assessment_json)
            source = "manual assessment"
        else:
            raw = await self.llm.generate(await self._estimation_prompt(job, template), format="json")
            job.raw_estimation_response = raw
            try:
                result = interpret_ai_response(raw, EffortEstimationResult, component_name="effort_estimation")
            except MalformedResponseError:
                job.final_analysis_json = None
                raise MalformedResponseError(raw, component="effort_estimation")
            source = "model"

        normalized = normalize_estimates(result, template)
        if not normalized.items:
            job.final_analysis_json = None
            raise MalformedResponseError(
                f"Estimation from {source} did not cover any template item",
                component="effort_estimation",
            )

        job.final_analysis_json = normalized.model_dump_json()
        return f"Estimated {len(normalized.items)} item(s) from {source}"

    def _estimation_context(self, job: AssessmentJob, template: ProjectTemplate) -> Dict[str, Any]:
        references = (
            _references_adapter.validate_json(job.reference_assessments_json)
            if job.reference_assessments_json
            else []
        )
        return {
            "projectName": job.project_name,
            "estimationColumns": template.estimation_columns,
            "sections": [
                {
                    "sectionName": section.section_name,
                    "items": [
                        {"itemId": item.item_id, "itemName": item.item_name, "itemDetail": item.item_detail}
                        for item in section.items
                    ],
                }
                for section in template.sections
            ],
            "similarAssessments": [
                {
                    "projectName": reference.project_name,
                    "items": [
                        {"itemName": item.item_name, "estimates": item.estimates}
                        for section in reference.sections
                        for item in section.items
                        if item.is_needed
                    ],
                }
                for reference in references
            ],
            "referenceDocuments": _reference_documents(job),
        }

    async def _estimation_prompt(self, job: AssessmentJob, template: ProjectTemplate) -> str:
        context = self._estimation_context(job, template)
        strict = job.analysis_mode == AnalysisMode.STRICT

        reference_instruction = ""
        if context["referenceDocuments"]:
            reference_instruction += (
                " Use the supplied knowledge base summaries only for clarification; do not broaden the scope."
                if strict
                else " Consider the supplied knowledge base summaries when they add relevant background."
            )
        if context["similarAssessments"]:
            reference_instruction += (
                " Use the similar assessment history to calibrate whether items are typically in scope "
                "and the scale of effort required."
            )

        return EFFORT_ESTIMATION_PROMPT.format(
            instructions=EFFORT_ESTIMATION_STRICT if strict else EFFORT_ESTIMATION_INTERPRETIVE,
            reference_instruction=reference_instruction,
            language_instruction=LANGUAGE_INSTRUCTIONS[job.output_language.value],
            context_json=json.dumps(context, indent=2),
            document_text=await load_scope_document(job.scope_document_path, job.scope_document_mime_type),
        )

    async def finalize_analysis(self, job: AssessmentJob) -> str:
        if not job.final_analysis_json:
            raise PreconditionFailedError(f"Job {job.id} has no effort estimation", component="final_analysis")

        template = build_augmented_template(_load_template(job), _load_generated_items(job))
        analysis = EffortEstimationResult.model_validate_json(job.final_analysis_json)
        assessment = await self.assessment_store.save(build_assessment(template, analysis, job))

        needed = sum(1 for s in assessment.sections for item in s.items if item.is_needed)
        return f"Assessment {assessment.id} completed with {needed} needed item(s)"
