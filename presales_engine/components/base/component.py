import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from .exceptions import ComponentError
from .logging import get_logger

TRequest = TypeVar("TRequest")
TResponse = TypeVar("TResponse")


class BaseComponent(ABC, Generic[TRequest, TResponse]):
    """Async unit of work with a stable name for logs and error reports.

    Subclasses implement `process()`. Calling the component runs `process()`
    and logs how the request ended under `component_name`.
    """

    @property
    @abstractmethod
    def component_name(self) -> str:
        pass

    @abstractmethod
    async def process(self, request: TRequest) -> TResponse:
        pass

    async def __call__(self, request: TRequest) -> TResponse:
        logger = get_logger(self.component_name)
        started = time.perf_counter()
        try:
            response = await self.process(request)
        except ComponentError as e:
            logger.warning(
                "Request failed",
                request=request,
                error_type=e.__class__.__name__,
                error=e.message,
                elapsed_ms=round((time.perf_counter() - started) * 1000),
            )
            raise
        logger.info(
            "Request finished",
            request=request,
            elapsed_ms=round((time.perf_counter() - started) * 1000),
        )
        return response
