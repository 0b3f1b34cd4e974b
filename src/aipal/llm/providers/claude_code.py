"""Claude Code CLI provider implementation.

Runs ``claude -p`` with every tool removed. Reference:
https://docs.anthropic.com/en/docs/claude-code/cli-reference
"""

import json
import logging
from typing import Any

from ..models import LLMResponse
from ._cli import PROCESS_TIMEOUT, CliAgentClient, StreamEventParser, usage_tokens


def _text_block(block: Any) -> str | None:
    if isinstance(block, dict) and block.get("type") == "text":
        text = block.get("text")
        return text if isinstance(text, str) else None
    return None


class ClaudeStreamParser(StreamEventParser):
    """Parser for ``--output-format stream-json`` events.

    Event vocabulary:
    - ``assistant``: full message with text content blocks
    - ``content_block_delta``: incremental ``text_delta``
    - ``message_delta``: end-of-message bookkeeping, ignored
    - ``result``: final event carrying usage
    """

    def feed(self, event: dict[str, Any]) -> list[str]:
        kind = event.get("type")

        if kind == "assistant":
            message = event.get("message")
            if not isinstance(message, dict):
                return []
            content = message.get("content")
            if not isinstance(content, list):
                return []
            return [text for text in map(_text_block, content) if text]

        if kind == "content_block_delta":
            delta = event.get("delta")
            if (
                isinstance(delta, dict)
                and delta.get("type") == "text_delta"
                and isinstance(delta.get("text"), str)
                and delta["text"]
            ):
                return [delta["text"]]
            return []

        if kind == "result":
            self.tokens = usage_tokens(event)
            self.finished = True

        return []


class ClaudeCodeClient(CliAgentClient):
    """Claude Code provider implementation.

    Hidden design decisions:
    - Command line (print mode, JSON output, all tools disabled)
    - System prompt as a prose prefix
    - JSON result parsing with a raw-text fallback
    """

    label = "Claude Code"

    def __init__(
        self,
        executable_path: str,
        model: str = "claude-sonnet-4-6",
        timeout: float = PROCESS_TIMEOUT,
        logger: logging.Logger | None = None
    ):
        super().__init__(executable_path, model, timeout, logger)

    @property
    def provider_name(self) -> str:
        return "Claude Code"

    def build_command(self, streaming: bool) -> list[str]:
        command = [
            self.executable_path,
            "-p",
            "--output-format",
            "stream-json" if streaming else "json",
        ]
        if streaming:
            command.append("--verbose")
        command += ["--model", self._model]
        # --tools "" removes every tool; --allowedTools "" auto-approves none.
        command += ["--tools", "", "--allowedTools", ""]
        return command

    def single_prompt(self, prompt: str, system_prompt: str | None) -> str:
        if system_prompt:
            return f"{system_prompt}\n\n{prompt}"
        return prompt

    def new_stream_parser(self) -> StreamEventParser:
        return ClaudeStreamParser()

    def parse_output(self, stdout: str) -> LLMResponse:
        try:
            data = json.loads(stdout)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
        except ValueError as e:
            text = stdout.strip()
            if text:
                return LLMResponse.ok(text)
            return LLMResponse.error(f"Failed to parse Claude Code response: {e}")

        result = data.get("result")
        return LLMResponse.ok(result if isinstance(result, str) else "", usage_tokens(data))
