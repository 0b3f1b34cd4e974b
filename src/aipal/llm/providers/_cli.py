"""Shared process lifecycle for command-line agent backends.

The agent reads a flattened transcript on stdin and reports on stdout, either
as one JSON document or as newline-delimited JSON events. The command line
built by each subclass must disable every tool the agent offers: prompts
carry untrusted captured traffic, and an agent that can run tools turns that
traffic into a command-injection path.
"""

import json
import logging
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ...transport.process import (
    ProcessWatchdog,
    kill,
    launch,
    open_stderr_capture,
    read_capture,
    run_quick,
)
from ..base import LLMClient
from ..models import LLMResponse, Message
from ..streaming import StreamSink
from ..text import flatten_transcript, sanitize_text

PROCESS_TIMEOUT = 120.0
VERSION_TIMEOUT = 10.0


class StreamEventParser(ABC):
    """Turns one call's stream of JSON events into text chunks.

    A parser holds the state of a single call and is never reused.
    """

    def __init__(self) -> None:
        self.tokens = 0
        self.finished = False
        # Set by the reader once any text reached the sink.
        self.emitted = False

    @abstractmethod
    def feed(self, event: dict[str, Any]) -> list[str]:
        """Consume one event.

        Returns:
            Text chunks to deliver, possibly none. Unknown event types yield
            nothing. Sets ``finished`` when the event ends the answer.
        """


def usage_tokens(event: dict[str, Any]) -> int:
    """Input plus output tokens from an event's ``usage`` object."""
    usage = event.get("usage")
    if not isinstance(usage, dict):
        return 0
    return _count(usage.get("input_tokens")) + _count(usage.get("output_tokens"))


def _count(value: Any) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


class CliAgentClient(LLMClient):
    """Base for adapters that drive a local CLI agent as a child process.

    Hidden design decisions:
    - Process launch (working directory, PATH, stdin prompt delivery)
    - Timeout enforcement and forced termination
    - Standard error capture for exit-code errors
    - Cancellation by killing the child
    """

    # Name used in exit-code and failure messages.
    label = "CLI agent"

    # Error for a clean run that produced no answer text; None accepts it.
    empty_answer_message: str | None = None

    def __init__(
        self,
        executable_path: str,
        model: str,
        timeout: float = PROCESS_TIMEOUT,
        logger: logging.Logger | None = None
    ):
        """Initialize a CLI agent client.

        Args:
            executable_path: Absolute path to the agent binary
            model: Model identifier passed on the command line
            timeout: Seconds a single call may take end to end
            logger: Logging sink
        """
        self.executable_path = (executable_path or "").strip()
        self._model = model
        self.timeout = timeout
        self._log = logger or logging.getLogger(type(self).__module__)

    @property
    def model(self) -> str:
        return self._model

    @property
    def supports_streaming(self) -> bool:
        return True

    @abstractmethod
    def build_command(self, streaming: bool) -> list[str]:
        """Full argv for one call; must disable every agent tool."""

    @abstractmethod
    def single_prompt(self, prompt: str, system_prompt: str | None) -> str:
        """Combine a system prompt and a user prompt into one text."""

    @abstractmethod
    def new_stream_parser(self) -> StreamEventParser:
        """Fresh parser for one streaming call."""

    @abstractmethod
    def parse_output(self, stdout: str) -> LLMResponse:
        """Interpret the complete stdout of a successful synchronous run."""

    def timeout_message(self) -> str:
        return f"{self.label} timed out after {self.timeout:g} seconds"

    def exit_message(self, code: int, stderr: str) -> str:
        message = f"{self.label} exited with code {code}"
        return f"{message}: {stderr}" if stderr else message

    def _missing_executable(self) -> str | None:
        if not self.executable_path:
            return f"{self.provider_name} executable path is not configured"
        return None

    def complete(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        try:
            return self._run(self.single_prompt(prompt, system_prompt))
        except Exception as e:
            self._log.error("%s error: %s", self.label, e)
            return LLMResponse.error(f"{self.label} error: {e}")

    def chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        try:
            return self._run(flatten_transcript(history, new_message))
        except Exception as e:
            self._log.error("%s chat error: %s", self.label, e)
            return LLMResponse.error(f"{self.label} chat error: {e}")

    def _run(self, prompt: str) -> LLMResponse:
        """Run the agent once and wait for its whole output."""
        problem = self._missing_executable()
        if problem:
            return LLMResponse.error(problem)

        with open_stderr_capture() as capture:
            process = launch(self.build_command(streaming=False), stderr=capture)
            try:
                stdout, _ = process.communicate(sanitize_text(prompt), timeout=self.timeout)
            except subprocess.TimeoutExpired:
                kill(process)
                process.communicate()
                self._log.warning("%s timed out after %ss", self.label, self.timeout)
                return LLMResponse.error(self.timeout_message())
            finally:
                kill(process)

            if process.returncode != 0:
                return LLMResponse.error(self.exit_message(process.returncode, read_capture(capture)))

        return self.parse_output(stdout or "")

    def chat_streaming(
        self,
        history: Sequence[Message],
        new_message: str,
        sink: StreamSink
    ) -> None:
        """Stream the agent's answer from its JSON event output.

        Cancelling the sink's token kills the child, which ends the read loop
        without any terminal event.
        """
        problem = self._missing_executable()
        if problem:
            sink.error(problem)
            return

        token = sink.cancel_token
        process = None
        try:
            with open_stderr_capture() as capture:
                process = launch(self.build_command(streaming=True), stderr=capture)
                child = process

                def release() -> None:
                    kill(child)

                token.add_callback(release)
                try:
                    with ProcessWatchdog(process, self.timeout) as watchdog:
                        self._write_prompt(process, flatten_transcript(history, new_message))
                        parser = self.new_stream_parser()
                        self._pump(process, parser, sink)
                        if parser.finished or sink.cancelled:
                            kill(process)
                        process.wait()
                finally:
                    token.remove_callback(release)
                    process.stdout.close()

                if sink.cancelled:
                    return
                if parser.finished:
                    sink.complete(parser.tokens)
                elif watchdog.fired:
                    sink.error(self.timeout_message())
                elif process.returncode != 0:
                    sink.error(self.exit_message(process.returncode, read_capture(capture)))
                elif not parser.emitted and self.empty_answer_message:
                    sink.error(self.empty_answer_message)
                else:
                    sink.complete(parser.tokens)
        except Exception as e:
            if process is not None:
                kill(process)
            if not sink.cancelled:
                self._log.error("%s streaming error: %s", self.label, e)
                sink.error(f"{self.label} streaming error: {e}")

    def _write_prompt(self, process: subprocess.Popen, prompt: str) -> None:
        try:
            process.stdin.write(sanitize_text(prompt))
            process.stdin.close()
        except OSError as e:
            # The exit code tells the real story if the child quit early.
            self._log.debug("%s closed stdin early: %s", self.label, e)

    def _pump(self, process: subprocess.Popen, parser: StreamEventParser, sink: StreamSink) -> None:
        """Read stdout lines until EOF, cancellation or a final event."""
        for line in process.stdout:
            if sink.cancelled:
                return
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                self._log.warning("Failed to parse %s event: %s", self.label, line)
                continue
            if not isinstance(event, dict):
                continue

            try:
                chunks = parser.feed(event)
            except (AttributeError, TypeError, ValueError, KeyError) as e:
                self._log.warning("Skipping malformed %s event %s: %s", self.label, line, e)
                continue

            for text in chunks:
                if sink.chunk(text):
                    parser.emitted = True
            if parser.finished:
                return

    def test_connection(self) -> bool:
        """Run ``--version`` and report whether it exits cleanly."""
        if self._missing_executable():
            return False
        try:
            return run_quick([self.executable_path, "--version"], VERSION_TIMEOUT).returncode == 0
        except (OSError, subprocess.SubprocessError) as e:
            self._log.error("%s connection test failed: %s", self.label, e)
            return False

    def get_version(self) -> str | None:
        """Trimmed ``--version`` output, or None if it cannot be obtained."""
        if self._missing_executable():
            return None
        try:
            result = run_quick([self.executable_path, "--version"], VERSION_TIMEOUT)
        except (OSError, subprocess.SubprocessError):
            return None
        return result.stdout.strip() if result.returncode == 0 else None
