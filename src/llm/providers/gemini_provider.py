from __future__ import annotations
import logging
import os
from typing import Any, Optional

import httpx

from schedule_ai.exceptions import MalformedResponseError, TransportError, UpstreamError
from .base import LLMProvider

logger = logging.getLogger(__name__)


def _first_candidate_text(data: Any) -> str:
    """candidates[0].content.parts[0].text, or "" when any step is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiProvider(LLMProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = (api_key or os.getenv("GEMINI_API_KEY", "")).strip()
        self.model = (model or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")).strip()
        self.base_url = (
            base_url or os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
        ).strip().rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("GEMINI_TIMEOUT_S", "30"))
        self._client = client

        if not self.api_key:
            raise RuntimeError("GEMINI_API_KEY is missing")

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")

        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]},
            ]
        }

        try:
            if self._client is not None:
                r = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await self._post(client, payload)
        except httpx.TransportError as e:
            raise TransportError(f"Gemini request failed: {e}") from e

        if not r.is_success:
            raise UpstreamError(r.status_code, r.reason_phrase)

        try:
            data = r.json()
        except ValueError as e:
            raise MalformedResponseError("Gemini returned a non-JSON body", raw=r.text) from e

        text = _first_candidate_text(data)
        if not text:
            logger.warning("Gemini response contained no candidate text")
        return text

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self.url,
            params={"key": self.api_key},
            headers={"Content-Type": "application/json"},
            json=payload,
        )
