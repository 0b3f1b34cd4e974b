"""Google Gemini LLM provider implementation."""

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from ...transport.http import HttpSender
from ..models import LLMResponse, Message, Role
from ..text import sanitize_text
from ._http import HttpLLMClient, encode_body

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def gemini_role(role: Role) -> str:
    """Gemini calls the assistant ``model``."""
    return "model" if role is Role.ASSISTANT else "user"


class GeminiClient(HttpLLMClient):
    """Google Gemini provider implementation.

    Hidden design decisions:
    - API key travels in the ``x-goog-api-key`` header
    - System instructions as ``system_instruction.parts``
    - Role mapping (assistant becomes ``model``)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            model: Model name (e.g. gemini-2.5-flash)
            http: Outbound HTTP capability
            logger: Logging sink
        """
        super().__init__(model, http, logger)
        self._api_key = api_key

    @property
    def provider_name(self) -> str:
        return "Google Gemini"

    @property
    def url(self) -> str:
        return f"{API_BASE}/{quote(self._model, safe='-_.')}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key}

    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        body: dict[str, Any] = {}
        if system_prompt:
            body["system_instruction"] = {"parts": [{"text": system_prompt}]}
        body["contents"] = [{"role": "user", "parts": [{"text": prompt}]}]
        return self._post(self.url, encode_body(body), self._headers())

    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        body: dict[str, Any] = {}
        system_parts = [
            {"text": sanitize_text(m.full_content)} for m in history if m.role is Role.SYSTEM
        ]
        if system_parts:
            body["system_instruction"] = {"parts": system_parts}

        contents = [
            {"role": gemini_role(m.role), "parts": [{"text": sanitize_text(m.full_content)}]}
            for m in history
            if m.role is not Role.SYSTEM
        ]
        contents.append({"role": "user", "parts": [{"text": sanitize_text(new_message)}]})
        body["contents"] = contents
        return self._post(self.url, encode_body(body), self._headers())

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        candidates = data.get("candidates") or []
        parts = (candidates[0].get("content") or {}).get("parts") if candidates else None
        if not parts:
            return LLMResponse.error(f"No response content from {self.provider_name}")

        text = parts[0].get("text", "")
        usage = data.get("usageMetadata") or {}
        return LLMResponse.ok(text, int(usage.get("totalTokenCount") or 0))
