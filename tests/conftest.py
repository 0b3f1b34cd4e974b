"""Pytest configuration and shared fixtures."""
import os
import stat
import sys
import textwrap
from pathlib import Path

import httpx
import pytest

from aipal.llm import StreamChunk, StreamComplete, StreamError, StreamSink
from aipal.transport import HttpxSender

AWS_VARIABLES = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_DEFAULT_PROFILE",
)


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at an empty directory and hide ambient AWS credentials."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for name in AWS_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "anthropic": os.getenv("ANTHROPIC_API_KEY"),
        "openai": os.getenv("OPENAI_API_KEY"),
        "gemini": os.getenv("GEMINI_API_KEY"),
    }


class RecordingTransport:
    """Mock transport that records requests and answers from a handler."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._handler(request)

    def sender(self) -> HttpxSender:
        return HttpxSender(httpx.Client(transport=httpx.MockTransport(self)))


@pytest.fixture
def mock_http():
    """Factory: ``mock_http(handler) -> (sender, recorder)``."""
    def build(handler):
        recorder = RecordingTransport(handler)
        return recorder.sender(), recorder

    return build


class EventCollector:
    """StreamSink consumer that keeps every delivered event."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def chunks(self) -> list[str]:
        return [e.text for e in self.events if isinstance(e, StreamChunk)]

    @property
    def terminals(self) -> list:
        return [e for e in self.events if isinstance(e, (StreamComplete, StreamError))]


@pytest.fixture
def collector():
    return EventCollector()


@pytest.fixture
def sink(collector):
    return StreamSink(collector)


@pytest.fixture
def fake_agent(tmp_path):
    """Factory writing an executable Python script that stands in for a CLI agent."""
    if sys.platform.startswith("win"):
        pytest.skip("Fake agents rely on shebang lines")

    def build(body: str, name: str = "agent") -> Path:
        path = tmp_path / name
        script = f"#!{sys.executable}\nimport json, sys, time\n" + textwrap.dedent(body)
        path.write_text(script, encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return build
