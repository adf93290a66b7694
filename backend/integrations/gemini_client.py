# backend/integrations/gemini_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.errors import ConfigurationError, GenerationError
from app.settings import settings

_LOG = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 4000


def gemini_is_active() -> bool:
    """Return True if a Gemini API key is configured."""
    key = getattr(settings, "GEMINI_API_KEY", None)
    return bool(key and str(key).strip())


def _candidate_text(data: Any) -> Optional[str]:
    """candidates[0].content.parts[0].text, or None for any other shape."""
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) and text.strip() else None


def _finish_reason(data: Any) -> str:
    try:
        return str(data["candidates"][0].get("finishReason") or "Unknown reason")
    except (KeyError, IndexError, TypeError, AttributeError):
        return "Unknown reason"


class GeminiClient:
    """
    Thin async client for the generateContent endpoint.
    One POST per call, fixed generation config, no retries.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        *,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = (api_key if api_key is not None else settings.GEMINI_API_KEY) or ""
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_URL).rstrip("/")
        self.timeout_s = timeout_s or settings.GEMINI_TIMEOUT_S
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        if not self.api_key.strip():
            raise ConfigurationError("GEMINI_API_KEY not configured")

        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            _LOG.warning("gemini call failed: %s", e)
            raise GenerationError(f"Gemini request failed: {e}")

        if resp.status_code >= 400:
            _LOG.warning("gemini returned %s: %s", resp.status_code, resp.text[:500])
            raise GenerationError(f"Gemini API error: {resp.status_code}", upstreamStatus=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            raise GenerationError("Gemini returned a non-JSON response")

        text = _candidate_text(data)
        if text is None:
            _LOG.warning("no text in gemini response: %s", data)
            raise GenerationError("No response from AI", details=_finish_reason(data))
        return text
