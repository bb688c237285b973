import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from presales_engine.components.base.config import Settings, get_settings
from presales_engine.components.base.exceptions import LlmTimeoutError, LlmUnavailableError
from presales_engine.components.base.logging import get_logger

logger = get_logger("llm_client")


class LlmClient:
    """Async client for the Ollama generation API.

    `generate()` carries no contract on the shape of the returned text;
    callers run every response through `utils.ai_response`.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.base_url = settings.llm_base_url
        self.model = settings.llm_model
        self.timeout = settings.llm_timeout_seconds
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens
        self.deadline = settings.llm_call_deadline_seconds

    def _payload(self, prompt: str, format: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        if format == "json":
            payload["format"] = "json"
        return payload

    async def generate(self, prompt: str, format: Optional[str] = None) -> str:
        """Generate text for a prompt, bounded by the per-call deadline.

        Raises:
            LlmTimeoutError: If the request or the overall deadline expires
            LlmUnavailableError: If the server is unreachable or answers badly
        """
        started = time.perf_counter()
        try:
            text = await asyncio.wait_for(self._post_generate(self._payload(prompt, format)), timeout=self.deadline)
        except asyncio.TimeoutError:
            raise LlmTimeoutError(f"LLM call exceeded deadline of {self.deadline}s", component="llm")

        logger.debug(
            "LLM call finished",
            model=self.model,
            prompt_chars=len(prompt),
            response_chars=len(text),
            elapsed_ms=round((time.perf_counter() - started) * 1000),
        )
        return text

    async def _post_generate(self, payload: Dict[str, Any]) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                return response.json().get("response", "")
        except httpx.TimeoutException:
            raise LlmTimeoutError(f"LLM request timed out after {self.timeout}s", component="llm")
        except httpx.HTTPError as e:
            raise LlmUnavailableError(f"LLM unavailable: {e}", component="llm")
        except ValueError as e:
            raise LlmUnavailableError(f"LLM returned an invalid response body: {e}", component="llm")

    async def verify_connection(self) -> bool:
        """True when the model server answers its tag listing."""
        try:
            async with httpx.AsyncClient(timeout=5) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False
