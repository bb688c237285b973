"""
Configuration store.

Presales configuration and historical timeline references live in two JSON
files. Every read returns a fresh copy so callers may mutate what they get
without affecting other readers.
"""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from presales_engine.components.assessments.models import ProjectTemplate
from presales_engine.components.base.config import get_settings
from presales_engine.components.base.exceptions import NotFoundError, PersistenceFailureError
from presales_engine.components.base.logging import get_logger
from presales_engine.utils.file_io import atomic_write_text, read_text
from .models import PresalesConfiguration, TimelineEstimationReference

logger = get_logger("configuration_store")

_references_adapter = TypeAdapter(List[TimelineEstimationReference])


class ConfigurationStore:
    def __init__(
        self,
        configuration_file: Optional[Path] = None,
        references_file: Optional[Path] = None,
    ):
        settings = get_settings()
        self.configuration_file = configuration_file or Path(settings.presales_configuration_file)
        self.references_file = references_file or Path(settings.timeline_references_file)
        self._lock = asyncio.Lock()

    async def get_configuration(self) -> PresalesConfiguration:
        """Load the presales configuration; a missing file yields an empty one."""
        data = await read_text(self.configuration_file, component="configuration_store")
        if data is None:
            logger.warning("Configuration file not found", path=str(self.configuration_file))
            return PresalesConfiguration()
        try:
            return PresalesConfiguration.model_validate_json(data)
        except ValidationError as e:
            raise PersistenceFailureError(
                f"Invalid configuration file: {e.error_count()} error(s)",
                component="configuration_store",
                details={"path": str(self.configuration_file)},
            )

    async def get_references(self) -> List[TimelineEstimationReference]:
        """Load historical timeline references; a missing file yields none."""
        data = await read_text(self.references_file, component="configuration_store")
        if data is None:
            return []
        try:
            return _references_adapter.validate_json(data)
        except ValidationError as e:
            raise PersistenceFailureError(
                f"Invalid timeline references file: {e.error_count()} error(s)",
                component="configuration_store",
                details={"path": str(self.references_file)},
            )

    async def get_template(self, template_id: int) -> ProjectTemplate:
        configuration = await self.get_configuration()
        for template in configuration.templates:
            if template.id == template_id:
                return template
        raise NotFoundError(f"Template {template_id} not found", component="configuration_store")

    async def save_configuration(self, configuration: PresalesConfiguration) -> None:
        async with self._lock:
            await atomic_write_text(
                self.configuration_file,
                configuration.model_dump_json(indent=2),
                component="configuration_store",
            )

    async def save_references(self, references: List[TimelineEstimationReference]) -> None:
        payload = json.dumps([r.model_dump(mode="json") for r in references], indent=2)
        async with self._lock:
            await atomic_write_text(self.references_file, payload, component="configuration_store")
