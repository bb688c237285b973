from presales_engine.components.base.exceptions import (
    ComponentError,
    NoEstimableDataError,
    NoTeamTypeConfiguredError,
    NotFoundError,
    PreconditionFailedError,
)

# First matching class wins
STATUS_CODES = [
    (NotFoundError, 404),
    (PreconditionFailedError, 409),
    (NoEstimableDataError, 409),
    (NoTeamTypeConfiguredError, 422),
]


def status_code_for(error: ComponentError) -> int:
    """HTTP status code for a component error, 500 when unmapped."""
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500
