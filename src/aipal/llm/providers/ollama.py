"""Ollama LLM provider implementation.

Talks to a local Ollama server over plain HTTP.
Reference: https://github.com/ollama/ollama/blob/main/docs/api.md
"""

import json
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import urlsplit

import httpx

from ...transport.http import STREAM_READ_TIMEOUT, HttpSender, build_post
from ..models import LLMResponse, Message
from ..streaming import StreamSink
from ._http import HttpLLMClient, encode_body, role_messages, token_sum

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
CHAT_PATH = "/api/chat"
DEFAULT_BASE_URL = "http://localhost:11434"

THINKING_OPEN = "<thinking>\n"
THINKING_CLOSE = "\n</thinking>\n\n"


def parse_base_url(base_url: str, log: logging.Logger = logger) -> tuple[str, int, bool]:
    """Split a base URL into host, port and whether to use HTTPS.

    A missing scheme means http. A missing port defaults to 443 for https
    and 80 for http. Anything unparseable falls back to localhost:11434.
    """
    url = (base_url or "").strip()
    if not url.startswith(("http://", "https://")):
        url = "http://" + url
    try:
        parts = urlsplit(url)
        host = parts.hostname
        port = parts.port
        if not host:
            raise ValueError("missing host")
    except ValueError:
        log.error("Invalid Ollama base URL: %s, using default %s", base_url, DEFAULT_BASE_URL)
        return "localhost", 11434, False

    use_https = parts.scheme == "https"
    if port is None:
        port = 443 if use_https else 80
    return host, port, use_https


def with_thinking(thinking: str | None, content: str) -> str:
    """Prefix content with a reasoning model's thinking block, if any."""
    if thinking:
        return f"{THINKING_OPEN}{thinking}{THINKING_CLOSE}{content}"
    return content


class OllamaClient(HttpLLMClient):
    """Ollama provider implementation.

    Hidden design decisions:
    - Base URL parsing with a loopback fallback
    - Endpoint choice (/api/generate for single turn, /api/chat for chat)
    - Newline-delimited JSON streaming terminated by a ``done`` flag
    - Thinking-content framing for reasoning models
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "llama3.2",
        http: HttpSender | None = None,
        logger: logging.Logger | None = None
    ):
        """Initialize Ollama provider.

        Args:
            base_url: Server URL, scheme optional (e.g. localhost:11434)
            model: Model name as pulled into Ollama
            http: Outbound HTTP capability (default: a private httpx client)
            logger: Logging sink (default: this module's logger)
        """
        super().__init__(model, http, logger)
        self._base_url = base_url
        self.host, self.port, self.use_https = parse_base_url(base_url, self._log)

    @property
    def provider_name(self) -> str:
        return "Ollama"

    @property
    def supports_streaming(self) -> bool:
        return True

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        # IPv6 literals need their brackets back in a URL.
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{scheme}://{host}:{self.port}"

    def _url(self, path: str) -> str:
        return self.base_url + path

    def _complete(self, prompt: str, system_prompt: str | None) -> LLMResponse:
        payload: dict[str, Any] = {"model": self._model, "prompt": prompt, "stream": False}
        if system_prompt:
            payload["system"] = system_prompt
        return self._send(GENERATE_PATH, payload)

    def _chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        payload = self._chat_payload(history, new_message, stream=False)
        return self._send(CHAT_PATH, payload)

    def _chat_payload(
        self,
        history: Sequence[Message],
        new_message: str,
        stream: bool
    ) -> dict[str, Any]:
        return {
            "model": self._model,
            "stream": stream,
            "messages": role_messages(history, new_message or None),
        }

    def _send(self, path: str, payload: dict[str, Any]) -> LLMResponse:
        headers = {"Content-Type": "application/json"}
        try:
            response = self._http.send(build_post(self._url(path), encode_body(payload), headers))
        except httpx.HTTPError as e:
            self._log.error("Ollama request failed: %s", e)
            return LLMResponse.error(
                f"No response from Ollama. Is Ollama running at {self._base_url}? ({e})"
            )
        return self._interpret(response)

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        message = data.get("message")
        if isinstance(message, dict):
            content = message.get("content") or ""
            thinking = message.get("thinking")
        else:
            content = data.get("response") or ""
            thinking = data.get("thinking")

        tokens = token_sum(data, "eval_count", "prompt_eval_count")
        return LLMResponse.ok(with_thinking(thinking, content), tokens)

    def chat_streaming(
        self,
        history: Sequence[Message],
        new_message: str,
        sink: StreamSink
    ) -> None:
        """Stream a chat answer from /api/chat.

        Each response line is one JSON object. Text arrives in
        ``message.content`` (and ``message.thinking`` for reasoning models);
        the line carrying ``done: true`` holds the token counters.
        """
        token = sink.cancel_token
        try:
            payload = self._chat_payload(history, new_message, stream=True)
            request = build_post(
                self._url(CHAT_PATH),
                encode_body(payload),
                {"Content-Type": "application/json"},
                read_timeout=STREAM_READ_TIMEOUT,
            )
            with self._http.stream(request) as response:
                release = response.close
                token.add_callback(release)
                try:
                    if response.status_code != 200:
                        body = response.read().decode("utf-8", errors="replace")
                        sink.error(f"Ollama API error (HTTP {response.status_code}): {body}")
                        return
                    tokens = self._consume_lines(response.iter_lines(), sink)
                finally:
                    token.remove_callback(release)

            if tokens is not None:
                sink.complete(tokens)
        except Exception as e:
            # Closing the response on cancel surfaces here as a read error.
            if not sink.cancelled:
                self._log.error("Ollama streaming error: %s", e)
                sink.error(f"Ollama streaming error: {e}")

    def _consume_lines(self, lines, sink: StreamSink) -> int | None:
        """Forward streamed text to the sink.

        Returns:
            Total tokens once the stream ends, or None if cancelled
        """
        thinking_open = False
        content_started = False
        tokens = 0

        for line in lines:
            if sink.cancelled:
                return None
            if not line.strip():
                continue
            try:
                chunk = json.loads(line)
            except json.JSONDecodeError:
                self._log.warning("Failed to parse Ollama streaming chunk: %s", line)
                continue
            if not isinstance(chunk, dict):
                continue

            message = chunk.get("message")
            if isinstance(message, dict):
                thinking = message.get("thinking") or ""
                if thinking:
                    if not thinking_open:
                        sink.chunk(THINKING_OPEN)
                        thinking_open = True
                    sink.chunk(thinking)

                content = message.get("content") or ""
                if content:
                    if thinking_open and not content_started:
                        sink.chunk(THINKING_CLOSE)
                    content_started = True
                    sink.chunk(content)

            if chunk.get("done"):
                tokens = token_sum(chunk, "eval_count", "prompt_eval_count")
                break

        return None if sink.cancelled else tokens
