import json
import logging
import os
from typing import Any, Optional

from llm.providers.base import LLMProvider
from llm.sanitizer import JsonKind, sanitize
from schedule_ai.exceptions import MalformedResponseError, ScheduleAIError
from schedule_ai.metrics import LLM_CALLS_TOTAL

logger = logging.getLogger(__name__)


def provider_from_env() -> LLMProvider:
    name = os.getenv("LLM_PROVIDER", "gemini").strip().lower()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        return MockProvider()
    if name == "gemini":
        from llm.providers.gemini_provider import GeminiProvider

        return GeminiProvider()
    raise RuntimeError(f"Unknown LLM_PROVIDER: {name}")


class LLMClient:
    """Front door to the generation service.

    Holds one provider and adds the JSON isolation step every caller needs.
    Errors from the provider are passed through untouched; retry policy belongs
    to the callers.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider if provider is not None else provider_from_env()

    @property
    def provider_name(self) -> str:
        return getattr(self.provider, "name", type(self.provider).__name__)

    async def complete(self, prompt: str) -> str:
        try:
            text = await self.provider.generate(prompt)
        except ScheduleAIError as e:
            LLM_CALLS_TOTAL.labels(provider=self.provider_name, status="error").inc()
            logger.warning(f"Generation call failed ({self.provider_name}): {e}")
            raise
        LLM_CALLS_TOTAL.labels(provider=self.provider_name, status="ok").inc()
        return text or ""

    async def complete_json(self, prompt: str, kind: JsonKind) -> Any:
        raw = await self.complete(prompt)
        return parse_json(raw, kind)


def parse_json(raw: str, kind: JsonKind) -> Any:
    payload = sanitize(raw, kind)
    try:
        return json.loads(payload)
    except ValueError as e:
        raise MalformedResponseError(f"Generation response is not valid JSON: {e}", raw=raw) from e
