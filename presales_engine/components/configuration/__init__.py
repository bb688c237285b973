from .models import PresalesConfiguration, TeamType, TeamTypeRole, TimelineEstimationReference
from .store import ConfigurationStore

__all__ = [
    "PresalesConfiguration",
    "TeamType",
    "TeamTypeRole",
    "TimelineEstimationReference",
    "ConfigurationStore",
]
