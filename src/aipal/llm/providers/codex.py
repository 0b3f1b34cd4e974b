"""OpenAI Codex CLI provider implementation.

Runs ``codex exec`` in a read-only sandbox with shell and web search turned
off, reading the prompt from stdin.
"""

import json
import logging
from typing import Any

from ..models import LLMResponse
from ._cli import PROCESS_TIMEOUT, CliAgentClient, StreamEventParser, usage_tokens

ITEM_EVENTS = ("item.started", "item.updated", "item.completed")


def agent_message(event: dict[str, Any]) -> tuple[str, str] | None:
    """``(item id, text)`` of an agent-message item event, else None."""
    item = event.get("item")
    if not isinstance(item, dict) or item.get("type") != "agent_message":
        return None
    text = item.get("text")
    if not isinstance(text, str):
        return None
    return str(item.get("id") or ""), text


class CodexEventParser(StreamEventParser):
    """Parser for ``codex exec --json`` events.

    Item events repeat an item's whole text on every update, so each is
    diffed against the length last seen for that item id and only the new
    suffix is emitted.
    """

    def __init__(self) -> None:
        super().__init__()
        self._seen: dict[str, int] = {}

    def feed(self, event: dict[str, Any]) -> list[str]:
        kind = event.get("type")

        if kind in ITEM_EVENTS:
            found = agent_message(event)
            if found is None:
                return []
            item_id, text = found
            seen = self._seen.get(item_id, 0)
            self._seen[item_id] = max(seen, len(text))
            return [text[seen:]] if len(text) > seen else []

        if kind == "turn.completed":
            self.tokens += usage_tokens(event)

        return []


class CodexClient(CliAgentClient):
    """OpenAI Codex provider implementation.

    Hidden design decisions:
    - Command line (ephemeral, read-only sandbox, shell and web search off)
    - System prompt as a ``System:``/``User:`` transcript
    - Answer assembly from completed agent-message items
    """

    label = "Codex"
    empty_answer_message = "No response received from Codex CLI"

    def __init__(
        self,
        executable_path: str,
        model: str = "gpt-5.3-codex",
        timeout: float = PROCESS_TIMEOUT,
        logger: logging.Logger | None = None
    ):
        super().__init__(executable_path, model, timeout, logger)

    @property
    def provider_name(self) -> str:
        return "OpenAI Codex"

    def build_command(self, streaming: bool) -> list[str]:
        # The event stream is the same in both modes.
        return [
            self.executable_path,
            "exec",
            "--json",
            "--ephemeral",
            "--skip-git-repo-check",
            "--sandbox", "read-only",
            "-c", "features.shell_tool=false",
            "-c", "web_search=disabled",
            "-m", self._model,
            "-",
        ]

    def single_prompt(self, prompt: str, system_prompt: str | None) -> str:
        if system_prompt:
            return f"System: {system_prompt}\n\nUser: {prompt}"
        return prompt

    def timeout_message(self) -> str:
        return f"Codex process timed out after {self.timeout:g}s"

    def new_stream_parser(self) -> StreamEventParser:
        return CodexEventParser()

    def parse_output(self, stdout: str) -> LLMResponse:
        texts = []
        tokens = 0
        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                self._log.warning("Failed to parse Codex event: %s", line)
                continue
            if not isinstance(event, dict):
                continue

            kind = event.get("type")
            if kind == "item.completed":
                found = agent_message(event)
                if found and found[1]:
                    texts.append(found[1])
            elif kind == "turn.completed":
                tokens += usage_tokens(event)

        if not texts:
            return LLMResponse.error(self.empty_answer_message)
        return LLMResponse.ok("\n".join(texts), tokens)
