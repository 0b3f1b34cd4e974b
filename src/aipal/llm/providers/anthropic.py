"""Anthropic Claude LLM provider implementation."""

import logging
from collections.abc import Sequence
from typing import Any

from ...transport.http import HttpSender
from ..models import LLMResponse, Message, Role
from ._http import MAX_TOKENS, HttpLLMClient, encode_body, role_messages, token_sum

API_URL = "https://api.anthropic.com/v1/messages"
API_VERSION = "2023-06-01"


class AnthropicClient(HttpLLMClient):
    """Anthropic Messages API provider implementation.

    Hidden design decisions:
    - API key and version headers
    - The first system message becomes the top-level ``system`` field
    - Token accounting (input plus output)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Model name (e.g. claude-sonnet-4-20250514)
            http: Outbound HTTP capability
            logger: Logging sink
        """
        super().__init__(model, http, logger)
        self._api_key = api_key

    @property
    def provider_name(self) -> str:
        return "Anthropic Claude"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": API_VERSION,
        }

    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        body: dict[str, Any] = {
            "model": self._model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        return self._post(API_URL, encode_body(body), self._headers())

    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        body: dict[str, Any] = {"model": self._model, "max_tokens": MAX_TOKENS}
        system = next((m for m in history if m.role is Role.SYSTEM), None)
        if system is not None:
            body["system"] = system.full_content
        body["messages"] = role_messages(history, new_message, skip_system=True)
        return self._post(API_URL, encode_body(body), self._headers())

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        content = data.get("content") or []
        if not content:
            return LLMResponse.error(f"No response content from {self.provider_name}")

        text = "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
        tokens = token_sum(data.get("usage"), "input_tokens", "output_tokens")
        return LLMResponse.ok(text, tokens)
