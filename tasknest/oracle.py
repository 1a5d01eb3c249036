"""Text-generation oracle: prompt in, text out.

The app receives an ``Oracle`` through ``create_app(oracle=...)``; tests hand
in a deterministic fake instead of ``GeminiOracle``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from .config import Settings
from .errors import TransportError

logger = logging.getLogger(__name__)


class Oracle(Protocol):
    def generate(self, prompt: str, *, json_mode: bool = False) -> str:
        """Return the model's text reply. Raises TransportError on any upstream failure."""
        ...


def _extract_text(data: Any) -> str:
    """Concatenate the text parts of the first candidate of a generateContent reply."""
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(parts, list):
        return ""
    return "".join(p.get("text") or "" for p in parts if isinstance(p, dict))


class GeminiOracle:
    """Calls the Gemini ``models/{model}:generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiOracle":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.oracle_timeout_seconds,
        )

    def generate(self, prompt: str, *, json_mode: bool = False) -> str:
        if not self.api_key:
            raise TransportError("AI service error", "Gemini API key is not set. Set GEMINI_API_KEY in your .env.")

        body: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if json_mode:
            body["generationConfig"] = {"responseMimeType": "application/json"}

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            resp = self._client.post(url, params={"key": self.api_key}, json=body)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Oracle HTTP %s from model=%s", e.response.status_code, self.model)
            raise TransportError("AI service error", f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.HTTPError as e:
            logger.error("Oracle request failed for model=%s: %s", self.model, e)
            raise TransportError("AI service error", str(e) or e.__class__.__name__) from e
        except ValueError as e:
            raise TransportError("AI service error", "Malformed response from AI service") from e

        text = _extract_text(data)
        if not text.strip():
            raise TransportError("AI service error", "AI service returned no text")
        return text

    def close(self) -> None:
        self._client.close()
