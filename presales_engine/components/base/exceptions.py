from typing import Optional, Dict, Any


class ComponentError(Exception):
    """Base exception for all component errors."""

    def __init__(
        self,
        message: str,
        component: str = "unknown",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.component = component
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "details": self.details,
        }


# Identity / precondition errors (always surfaced)
class NotFoundError(ComponentError):
    pass


class PreconditionFailedError(ComponentError):
    pass


class NoEstimableDataError(ComponentError):
    pass


# Configuration errors (fatal for the current run)
class NoTeamTypeConfiguredError(ComponentError):
    pass


# Language-model errors (absorbed by the fallback estimator)
class MalformedResponseError(ComponentError):
    pass


class ExternalCallFailureError(ComponentError):
    pass


class LlmTimeoutError(ExternalCallFailureError):
    pass


class LlmUnavailableError(ExternalCallFailureError):
    pass


# Storage errors
class PersistenceFailureError(ComponentError):
    pass
