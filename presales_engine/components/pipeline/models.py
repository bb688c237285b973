from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentAnalysisResult(BaseModel):
    """Model answer for the man-hour detection prompt."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    has_manhour: Optional[bool] = None
    notes: Optional[str] = ""
