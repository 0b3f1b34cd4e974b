"""Unit tests for the Claude Code and Codex CLI providers.

The agents are replaced by small executable Python scripts that speak the
same stdin/stdout protocol.
"""
import json
import time
from pathlib import Path

import pytest

from aipal.llm import (
    CancellationToken,
    ClaudeCodeClient,
    CodexClient,
    Message,
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamSink,
)
from aipal.llm.providers.claude_code import ClaudeStreamParser
from aipal.llm.providers.codex import CodexEventParser

pytestmark = pytest.mark.usefixtures("isolated_home")

CLAUDE_AGENT = """
args = sys.argv[1:]
if "--version" in args:
    print("2.1.0 (Claude Code)")
    sys.exit(0)
prompt = sys.stdin.read()
with open(__file__ + ".log", "w") as log:
    json.dump({"argv": args, "stdin": prompt}, log)
if "stream-json" in args:
    for event in [
        {"type": "system", "subtype": "init"},
        {"type": "assistant", "message": {"content": [
            {"type": "text", "text": "Hello"}, {"type": "tool_use", "name": "Bash"}]}},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": " world"}},
        {"type": "message_delta", "usage": {"output_tokens": 99}},
    ]:
        print(json.dumps(event), flush=True)
    print("not json", flush=True)
    print(json.dumps({"type": "result", "usage": {"input_tokens": 3, "output_tokens": 4}}), flush=True)
else:
    print(json.dumps({"result": "Hello world", "usage": {"input_tokens": 3, "output_tokens": 4}}))
"""

CODEX_AGENT = """
args = sys.argv[1:]
if "--version" in args:
    print("codex-cli 0.98.0")
    sys.exit(0)
prompt = sys.stdin.read()
with open(__file__ + ".log", "w") as log:
    json.dump({"argv": args, "stdin": prompt}, log)
for event in [
    {"type": "thread.started", "thread_id": "t1"},
    {"type": "item.started", "item": {"id": "msg_1", "type": "agent_message", "text": ""}},
    {"type": "item.updated", "item": {"id": "msg_1", "type": "agent_message", "text": "Hel"}},
    {"type": "item.updated", "item": {"id": "msg_1", "type": "agent_message", "text": "Hello"}},
    {"type": "item.completed", "item": {"id": "msg_1", "type": "agent_message", "text": "Hello world"}},
    {"type": "item.completed", "item": {"id": "r_1", "type": "reasoning", "text": "thinking"}},
    {"type": "item.completed", "item": {"id": "msg_2", "type": "agent_message", "text": "Second"}},
    {"type": "turn.completed", "usage": {"input_tokens": 10, "cached_input_tokens": 2, "output_tokens": 5}},
]:
    print(json.dumps(event), flush=True)
"""

FAILING_AGENT = """
sys.stdin.read()
sys.stderr.write("boom")
sys.exit(2)
"""

SILENT_CODEX = """
sys.stdin.read()
print(json.dumps({"type": "turn.completed", "usage": {"input_tokens": 1, "output_tokens": 0}}))
"""

ODD_SHAPED_AGENT = """
sys.stdin.read()
for event in [
    {"type": "assistant", "message": "oops"},
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "hi"}]}},
    {"type": "content_block_delta", "delta": "x"},
    {"type": "assistant", "message": {"content": 7}},
    {"type": "content_block_delta", "delta": {"type": "text_delta", "text": " there"}},
    {"type": "result", "usage": {"input_tokens": "many", "output_tokens": 2}},
]:
    print(json.dumps(event), flush=True)
"""

SLOW_AGENT = """
sys.stdin.read()
print(json.dumps({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "A"}}), flush=True)
print(json.dumps({"type": "item.updated", "item": {"id": "m", "type": "agent_message", "text": "A"}}), flush=True)
time.sleep(30)
print(json.dumps({"type": "result"}), flush=True)
"""


def read_log(agent: Path) -> dict:
    return json.loads(Path(str(agent) + ".log").read_text())


class TestClaudeCode:
    """Tests for ClaudeCodeClient."""

    def test_command_disables_tools(self):
        """Test the argv for both output modes."""
        client = ClaudeCodeClient("/opt/claude", "claude-sonnet-4-6")
        assert client.build_command(streaming=False) == [
            "/opt/claude", "-p", "--output-format", "json",
            "--model", "claude-sonnet-4-6", "--tools", "", "--allowedTools", "",
        ]
        assert client.build_command(streaming=True) == [
            "/opt/claude", "-p", "--output-format", "stream-json", "--verbose",
            "--model", "claude-sonnet-4-6", "--tools", "", "--allowedTools", "",
        ]

    def test_complete(self, fake_agent):
        """Test a synchronous call with prompt delivery on stdin."""
        agent = fake_agent(CLAUDE_AGENT)
        response = ClaudeCodeClient(str(agent)).complete("hello", system_prompt="be brief")

        assert response.success
        assert response.content == "Hello world"
        assert response.tokens_used == 7
        assert read_log(agent)["stdin"] == "be brief\n\nhello"

    def test_raw_stdout_fallback(self, fake_agent):
        """Test that non-JSON output is returned as text."""
        agent = fake_agent("sys.stdin.read()\nprint('  plain answer  ')\n")
        response = ClaudeCodeClient(str(agent)).complete("x")
        assert response.content == "plain answer"

    def test_streaming(self, fake_agent, sink, collector):
        """Test event parsing, transcript delivery and completion."""
        agent = fake_agent(CLAUDE_AGENT)
        client = ClaudeCodeClient(str(agent), "claude-opus-4-6")
        history = [Message.user("first"), Message.assistant("reply")]

        assert client.supports_streaming
        client.chat_streaming(history, "second", sink)

        assert collector.events == [
            StreamChunk(text="Hello"),
            StreamChunk(text=" world"),
            StreamComplete(tokens_used=7),
        ]
        log = read_log(agent)
        assert log["stdin"] == "User: first\n\nAssistant: reply\n\nUser: second"
        assert log["argv"][log["argv"].index("--model") + 1] == "claude-opus-4-6"

    def test_odd_shaped_events_skipped(self, fake_agent, sink, collector):
        """Test that valid JSON with an unexpected shape does not end the stream."""
        agent = fake_agent(ODD_SHAPED_AGENT)
        ClaudeCodeClient(str(agent)).chat_streaming([], "x", sink)

        assert collector.chunks == ["hi", " there"]
        assert collector.terminals == [StreamComplete(tokens_used=2)]

    def test_parser_failure_skips_only_that_line(self, fake_agent, sink, collector):
        """Test that an event the parser chokes on is logged and skipped."""

        class FragileParser(ClaudeStreamParser):
            def feed(self, event):
                if event.get("type") == "assistant" and event.get("message") == "oops":
                    raise AttributeError("'str' object has no attribute 'get'")
                return super().feed(event)

        class FragileClient(ClaudeCodeClient):
            def new_stream_parser(self):
                return FragileParser()

        FragileClient(str(fake_agent(ODD_SHAPED_AGENT))).chat_streaming([], "x", sink)

        assert collector.chunks == ["hi", " there"]
        assert collector.terminals == [StreamComplete(tokens_used=2)]

    def test_exit_code_and_stderr(self, fake_agent, sink, collector):
        """Test that a failing agent reports its exit code and stderr."""
        agent = fake_agent(FAILING_AGENT)
        client = ClaudeCodeClient(str(agent))

        response = client.chat([], "x")
        assert not response.success
        assert response.error_message == "Claude Code exited with code 2: boom"

        client.chat_streaming([], "x", sink)
        assert len(collector.events) == 1
        error = collector.events[0]
        assert isinstance(error, StreamError)
        assert "2" in error.message
        assert "boom" in error.message

    def test_timeout(self, fake_agent, sink, collector):
        """Test that a hung agent is killed and reported."""
        agent = fake_agent(SLOW_AGENT)
        client = ClaudeCodeClient(str(agent), timeout=1)

        assert client.complete("x").error_message == "Claude Code timed out after 1 seconds"

        client.chat_streaming([], "x", sink)
        assert collector.chunks == ["A"]
        assert collector.terminals == [StreamError(message="Claude Code timed out after 1 seconds")]

    def test_cancel_kills_agent(self, fake_agent):
        """Test that cancelling after the first chunk stops the call promptly."""
        agent = fake_agent(SLOW_AGENT)
        token = CancellationToken()
        events = []

        def consume(event):
            events.append(event)
            token.cancel()

        started = time.monotonic()
        ClaudeCodeClient(str(agent), timeout=60).chat_streaming([], "x", StreamSink(consume, token))

        assert events == [StreamChunk(text="A")]
        assert time.monotonic() - started < 20

    def test_missing_executable_path(self, sink, collector):
        """Test that an unconfigured path fails before launching anything."""
        client = ClaudeCodeClient("")
        assert "not configured" in client.complete("x").error_message
        assert not client.test_connection()
        assert client.get_version() is None
        client.chat_streaming([], "x", sink)
        assert isinstance(collector.events[0], StreamError)

    def test_nonexistent_executable(self, tmp_path, sink, collector):
        """Test that a launch failure becomes an error."""
        client = ClaudeCodeClient(str(tmp_path / "nope"))
        assert not client.complete("x").success
        client.chat_streaming([], "x", sink)
        assert len(collector.terminals) == 1
        assert isinstance(collector.terminals[0], StreamError)

    def test_version_and_connection(self, fake_agent):
        """Test the --version based checks."""
        client = ClaudeCodeClient(str(fake_agent(CLAUDE_AGENT)))
        assert client.test_connection()
        assert client.get_version() == "2.1.0 (Claude Code)"

        broken = ClaudeCodeClient(str(fake_agent("sys.exit(1)\n", name="broken")))
        assert not broken.test_connection()
        assert broken.get_version() is None


class TestClaudeStreamParser:
    """Tests for ClaudeStreamParser."""

    def test_unknown_events_ignored(self):
        """Test that unrecognized types produce nothing."""
        parser = ClaudeStreamParser()
        assert parser.feed({"type": "ping"}) == []
        assert parser.feed({}) == []
        assert not parser.finished

    @pytest.mark.parametrize("event", [
        {"type": "assistant", "message": "oops"},
        {"type": "assistant", "message": {"content": "text"}},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": 5}]}},
        {"type": "content_block_delta", "delta": "x"},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": None}},
    ])
    def test_odd_shapes_yield_nothing(self, event):
        """Test that unexpected payload shapes produce no chunks."""
        assert ClaudeStreamParser().feed(event) == []

    def test_non_numeric_usage_counts_as_zero(self):
        """Test usage counters that are not numbers."""
        parser = ClaudeStreamParser()
        parser.feed({"type": "result", "usage": {"input_tokens": "n/a", "output_tokens": 4}})
        assert parser.tokens == 4

    def test_result_finishes(self):
        """Test that the result event ends the answer with its usage."""
        parser = ClaudeStreamParser()
        parser.feed({"type": "result", "usage": {"input_tokens": 2, "output_tokens": 1}})
        assert parser.finished
        assert parser.tokens == 3


class TestCodex:
    """Tests for CodexClient."""

    def test_command_disables_tools(self):
        """Test the sandboxed argv."""
        assert CodexClient("/opt/codex", "gpt-5.2").build_command(streaming=True) == [
            "/opt/codex", "exec", "--json", "--ephemeral", "--skip-git-repo-check",
            "--sandbox", "read-only",
            "-c", "features.shell_tool=false",
            "-c", "web_search=disabled",
            "-m", "gpt-5.2", "-",
        ]

    def test_complete_joins_completed_messages(self, fake_agent):
        """Test synchronous answer assembly."""
        agent = fake_agent(CODEX_AGENT)
        response = CodexClient(str(agent)).complete("hello", system_prompt="sys")

        assert response.content == "Hello world\nSecond"
        assert response.tokens_used == 15
        assert read_log(agent)["stdin"] == "System: sys\n\nUser: hello"

    def test_streaming_diffs_items(self, fake_agent, sink, collector):
        """Test that cumulative item text is emitted as suffixes."""
        agent = fake_agent(CODEX_AGENT)
        CodexClient(str(agent)).chat_streaming([], "hello", sink)

        assert collector.chunks == ["Hel", "lo", " world", "Second"]
        assert collector.terminals == [StreamComplete(tokens_used=15)]

    def test_no_agent_message(self, fake_agent):
        """Test the empty-answer error."""
        agent = fake_agent(SILENT_CODEX)
        response = CodexClient(str(agent)).chat([], "x")
        assert response.error_message == "No response received from Codex CLI"

    def test_streaming_without_agent_message(self, fake_agent, sink, collector):
        """Test that streaming reports an empty answer like the sync path."""
        CodexClient(str(fake_agent(SILENT_CODEX))).chat_streaming([], "x", sink)
        assert collector.events == [StreamError(message="No response received from Codex CLI")]

    def test_exit_code_and_stderr(self, fake_agent):
        """Test that failures carry exit code and stderr."""
        response = CodexClient(str(fake_agent(FAILING_AGENT))).complete("x")
        assert response.error_message == "Codex exited with code 2: boom"

    def test_timeout(self, fake_agent, sink, collector):
        """Test the Codex timeout message."""
        client = CodexClient(str(fake_agent(SLOW_AGENT)), timeout=1)
        client.chat_streaming([], "x", sink)
        assert collector.chunks == ["A"]
        assert collector.terminals == [StreamError(message="Codex process timed out after 1s")]


class TestCodexEventParser:
    """Tests for CodexEventParser."""

    def test_items_tracked_separately(self):
        """Test that each item id keeps its own seen length."""
        parser = CodexEventParser()

        def item(item_id, text):
            return {"type": "item.updated", "item": {"id": item_id, "type": "agent_message", "text": text}}

        assert parser.feed(item("a", "Hi")) == ["Hi"]
        assert parser.feed(item("b", "Yo")) == ["Yo"]
        assert parser.feed(item("a", "Hi!")) == ["!"]
        assert parser.feed(item("a", "Hi!")) == []

    def test_parsers_do_not_share_state(self):
        """Test that a fresh parser starts from nothing."""
        event = {"type": "item.completed", "item": {"id": "a", "type": "agent_message", "text": "x"}}
        first = CodexEventParser()
        first.feed(event)
        assert CodexEventParser().feed(event) == ["x"]

    def test_usage_accumulates(self):
        """Test token counting across turns."""
        parser = CodexEventParser()
        parser.feed({"type": "turn.completed", "usage": {"input_tokens": 1, "output_tokens": 2}})
        parser.feed({"type": "turn.completed", "usage": {"input_tokens": 3}})
        assert parser.tokens == 6
        assert not parser.finished
