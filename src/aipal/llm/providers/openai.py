"""OpenAI LLM provider implementation."""

import logging
from collections.abc import Sequence
from typing import Any

from ...transport.http import HttpSender
from ..models import LLMResponse, Message
from ._http import HttpLLMClient, encode_body, role_messages

API_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIClient(HttpLLMClient):
    """OpenAI chat completions provider implementation.

    Hidden design decisions:
    - Bearer token authentication
    - System prompt as a synthetic leading message
    - Token accounting from ``usage.total_tokens``
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name (e.g. gpt-4o-mini)
            http: Outbound HTTP capability
            logger: Logging sink
        """
        super().__init__(model, http, logger)
        self._api_key = api_key

    @property
    def provider_name(self) -> str:
        return "OpenAI"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return self._send(messages)

    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        return self._send(role_messages(history, new_message))

    def _send(self, messages: list[dict[str, str]]) -> LLMResponse:
        body = {"model": self._model, "messages": messages}
        return self._post(API_URL, encode_body(body), self._headers())

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        choices = data.get("choices") or []
        message = choices[0].get("message") if choices else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            return LLMResponse.error(f"No response content from {self.provider_name}")

        usage = data.get("usage") or {}
        return LLMResponse.ok(content, int(usage.get("total_tokens") or 0))
