from .models import TimelineEstimationRecord, TimelineEstimatorRawInput
from .allocation import TeamAllocation, resolve_team_allocation
from .fallback import FallbackEstimator
from .store import TimelineEstimationStore
from .service import TimelineEstimatorService

__all__ = [
    "TimelineEstimationRecord",
    "TimelineEstimatorRawInput",
    "TeamAllocation",
    "resolve_team_allocation",
    "FallbackEstimator",
    "TimelineEstimationStore",
    "TimelineEstimatorService",
]
