import asyncio
from pathlib import Path
from typing import List, Optional

from presales_engine.components.base.config import get_settings
from presales_engine.components.base.logging import get_logger
from presales_engine.utils.file_io import atomic_write_text, read_text
from .models import TimelineEstimationRecord, TimelineEstimationSummary

logger = get_logger("timeline_estimation_store")


class TimelineEstimationStore:
    """
    Timeline estimation records, one JSON file per assessment.

    Saving replaces any previous record for the same assessment in a single
    file swap, so readers see either the old record or the new one.
    """

    def __init__(self, estimations_dir: Optional[Path] = None):
        self.estimations_dir = estimations_dir or get_settings().get_estimations_path()
        self.estimations_dir.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    async def upsert(self, record: TimelineEstimationRecord) -> TimelineEstimationRecord:
        async with self._lock:
            await atomic_write_text(
                self._path(record.assessment_id),
                record.model_dump_json(indent=2),
                component="timeline_estimation_store",
            )
        logger.info(
            "Timeline estimation saved",
            assessment_id=record.assessment_id,
            source=record.estimation_source,
        )
        return record

    async def get(self, assessment_id: int) -> Optional[TimelineEstimationRecord]:
        data = await read_text(self._path(assessment_id), component="timeline_estimation_store")
        if data is None:
            return None
        return TimelineEstimationRecord.model_validate_json(data)

    async def list_summaries(self) -> List[TimelineEstimationSummary]:
        """Summaries of all stored records, newest first."""
        summaries = []
        for path in self.estimations_dir.glob("*.json"):
            data = await read_text(path, component="timeline_estimation_store")
            if data is None:
                continue
            record = TimelineEstimationRecord.model_validate_json(data)
            summaries.append(
                TimelineEstimationSummary(
                    assessment_id=record.assessment_id,
                    project_name=record.project_name,
                    template_name=record.template_name,
                    generated_at=record.generated_at,
                    project_scale=record.project_scale,
                )
            )
        summaries.sort(key=lambda s: s.generated_at, reverse=True)
        return summaries

    def _path(self, assessment_id: int) -> Path:
        return self.estimations_dir / f"{assessment_id}.json"
