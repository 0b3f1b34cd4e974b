"""Shared request/response handling for HTTP backends."""

import json
import logging
from abc import abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx

from ...transport.http import HttpSender, HttpxSender, build_post
from ..base import LLMClient
from ..models import LLMResponse, Message, Role
from ..text import sanitize_text

MAX_TOKENS = 4096


def encode_body(payload: dict[str, Any]) -> bytes:
    """Serialize a JSON request body to the exact bytes sent (and signed)."""
    return sanitize_text(json.dumps(payload, ensure_ascii=False)).encode("utf-8")


def token_sum(usage: dict[str, Any] | None, *fields: str) -> int:
    """Sum integer usage counters, treating missing ones as zero."""
    if not usage:
        return 0
    return sum(int(usage.get(field) or 0) for field in fields)


class HttpLLMClient(LLMClient):
    """Base for adapters that POST JSON and parse a JSON answer.

    Hidden design decisions:
    - Body serialization and text sanitation
    - Status checking (non-200 is an error carrying status and raw body)
    - Conversion of transport and parse failures into error responses
    """

    def __init__(
        self,
        model: str,
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        self._model = model
        self._http = http or HttpxSender()
        self._log = logger or logging.getLogger(type(self).__module__)

    @property
    def model(self) -> str:
        return self._model

    def complete(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        try:
            return self._complete(prompt, system_prompt)
        except Exception as e:
            self._log.error("%s API error: %s", self.provider_name, e)
            return LLMResponse.error(f"{self.provider_name} API error: {e}")

    def chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        try:
            return self._chat(history, new_message)
        except Exception as e:
            self._log.error("%s chat error: %s", self.provider_name, e)
            return LLMResponse.error(f"{self.provider_name} chat error: {e}")

    @abstractmethod
    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        """Backend-specific single-turn call; may raise."""

    @abstractmethod
    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        """Backend-specific multi-turn call; may raise."""

    @abstractmethod
    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        """Turn a decoded 200 response into an LLMResponse."""

    def _post(self, url: str, body: bytes, headers: dict[str, str]) -> LLMResponse:
        """Send one POST and interpret the answer."""
        try:
            response = self._http.send(build_post(url, body, headers))
        except httpx.HTTPError as e:
            self._log.error("No response from %s: %s", self.provider_name, e)
            return LLMResponse.error(f"No response from {self.provider_name}: {e}")

        return self._interpret(response)

    def _interpret(self, response: httpx.Response) -> LLMResponse:
        response_body = response.content.decode("utf-8", errors="replace")
        if response.status_code != 200:
            return LLMResponse.error(
                f"{self.provider_name} API error (HTTP {response.status_code}): {response_body}"
            )

        try:
            data = json.loads(response_body)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return self._parse_response(data)
        except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
            self._log.error("Failed to parse %s response: %s", self.provider_name, e)
            return LLMResponse.error(f"Failed to parse {self.provider_name} response: {e}")


def role_messages(
    history: Sequence[Message],
    new_message: str | None,
    *,
    skip_system: bool = False
) -> list[dict[str, str]]:
    """Build a ``[{role, content}]`` array from history plus the new message."""
    messages = [
        {"role": msg.role.value, "content": sanitize_text(msg.full_content)}
        for msg in history
        if not (skip_system and msg.role is Role.SYSTEM)
    ]
    if new_message is not None:
        messages.append({"role": "user", "content": sanitize_text(new_message)})
    return messages
