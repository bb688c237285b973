import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from presales_engine.components.base.config import get_settings
from presales_engine.components.base.logging import get_logger
from presales_engine.utils.file_io import atomic_write_text, read_text
from .models import ProjectAssessment

logger = get_logger("assessment_store")


class ProjectAssessmentStore:
    """Completed assessments, stored as {assessments_dir}/{id}.json."""

    def __init__(self, assessments_dir: Optional[Path] = None):
        self.assessments_dir = assessments_dir or get_settings().get_assessments_path()
        self.assessments_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    async def get(self, assessment_id: int) -> Optional[ProjectAssessment]:
        data = await read_text(self._path(assessment_id), component="assessment_store")
        if data is None:
            return None
        return ProjectAssessment.model_validate_json(data)

    async def save(self, assessment: ProjectAssessment) -> ProjectAssessment:
        """Upsert an assessment; its id must already be set."""
        if assessment.id is None:
            raise ValueError("Assessment id is required to save an assessment")
        now = datetime.now(timezone.utc)
        assessment.created_at = assessment.created_at or now
        assessment.last_modified_at = now
        async with self._lock:
            await atomic_write_text(
                self._path(assessment.id),
                assessment.model_dump_json(indent=2),
                component="assessment_store",
            )
        logger.info("Assessment saved", assessment_id=assessment.id, status=assessment.status)
        return assessment

    def _path(self, assessment_id: int) -> Path:
        return self.assessments_dir / f"{assessment_id}.json"
