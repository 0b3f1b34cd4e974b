"""Unit tests for the cloud HTTP providers."""
import json

import httpx
import pytest

from aipal.aws import AwsCredentials
from aipal.llm import AnthropicClient, BedrockClient, GeminiClient, Message, OpenAIClient

pytestmark = pytest.mark.usefixtures("isolated_home")

HISTORY = [
    Message.system("You are a web security expert."),
    Message.user("What is this?", attached_context="POST /login HTTP/1.1"),
    Message.assistant("A login request."),
]


def ok(payload):
    return lambda request: httpx.Response(200, json=payload)


class TestBedrock:
    """Tests for BedrockClient."""

    CREDS = AwsCredentials(access_key="AKID", secret_key="secret", provenance="settings")

    def test_missing_credentials_make_no_calls(self, mock_http):
        """Test that missing credentials fail before any request."""
        sender, recorder = mock_http(ok({}))
        client = BedrockClient(http=sender)

        response = client.complete("hello")

        assert not response.success
        assert "credentials not configured" in response.error_message
        assert recorder.requests == []
        assert not client.test_connection()
        assert recorder.requests == []

    def test_signed_request(self, mock_http):
        """Test endpoint, path encoding and SigV4 headers."""
        sender, recorder = mock_http(ok({
            "content": [{"type": "text", "text": "Hi"}],
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }))
        client = BedrockClient(
            region="us-west-2",
            model="global.anthropic.claude-sonnet-4-5-20250929-v1:0",
            credentials=AwsCredentials(
                access_key="AKID", secret_key="secret", session_token="tok", provenance="environment"
            ),
            http=sender,
        )

        response = client.complete("hello", system_prompt="be brief")

        assert response.success
        assert response.content == "Hi"
        assert response.tokens_used == 15
        request = recorder.requests[0]
        assert request.url.host == "bedrock-runtime.us-west-2.amazonaws.com"
        assert request.url.raw_path == (
            b"/model/global.anthropic.claude-sonnet-4-5-20250929-v1%3A0/invoke"
        )
        assert request.headers["Authorization"].startswith("AWS4-HMAC-SHA256 Credential=AKID/")
        assert request.headers["X-Amz-Security-Token"] == "tok"
        assert request.headers["X-Amz-Content-Sha256"]
        assert request.headers["X-Amz-Date"]
        body = json.loads(request.content)
        assert body == {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": 4096,
            "messages": [{"role": "user", "content": "hello"}],
            "system": "be brief",
        }

    def test_chat_lifts_system_messages(self, mock_http):
        """Test that system messages become the top-level system field."""
        sender, recorder = mock_http(ok({"content": [{"type": "text", "text": "ok"}]}))
        BedrockClient(credentials=self.CREDS, http=sender).chat(HISTORY, "Is it vulnerable?")

        body = json.loads(recorder.requests[0].content)
        assert body["system"] == "You are a web security expert."
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert "POST /login HTTP/1.1" in body["messages"][0]["content"]

    def test_credentials_from_environment(self, monkeypatch):
        """Test that credentials are resolved once at construction."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "ENVKEY")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "envsecret")
        client = BedrockClient()
        monkeypatch.delenv("AWS_ACCESS_KEY_ID")
        assert client.credentials.provenance == "environment"
        assert client.credentials.is_valid

    def test_http_error(self, mock_http):
        """Test that AWS error bodies are surfaced."""
        sender, _ = mock_http(lambda req: httpx.Response(
            403, json={"message": "The request signature we calculated does not match"}
        ))
        response = BedrockClient(credentials=self.CREDS, http=sender).complete("x")
        assert "403" in response.error_message
        assert "signature" in response.error_message


class TestAnthropic:
    """Tests for AnthropicClient."""

    def test_complete(self, mock_http):
        """Test headers, body and token summing."""
        sender, recorder = mock_http(ok({
            "content": [{"type": "text", "text": "Hello"}],
            "usage": {"input_tokens": 7, "output_tokens": 3},
        }))
        response = AnthropicClient("sk-ant", "claude-sonnet-4-20250514", http=sender).complete(
            "hi", system_prompt="sys"
        )

        assert response.content == "Hello"
        assert response.tokens_used == 10
        request = recorder.requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(request.content)
        assert body["system"] == "sys"
        assert body["max_tokens"] == 4096

    def test_chat_round_trip(self, mock_http):
        """Test that history is sent and usage is summed."""
        sender, recorder = mock_http(ok({
            "content": [{"type": "text", "text": "Yes"}],
            "usage": {"input_tokens": 100, "output_tokens": 20},
        }))
        response = AnthropicClient("k", http=sender).chat(HISTORY, "Is it vulnerable?")

        assert response.success
        assert response.tokens_used == 120
        body = json.loads(recorder.requests[0].content)
        assert body["system"] == "You are a web security expert."
        assert [m["role"] for m in body["messages"]] == ["user", "assistant", "user"]
        assert body["messages"][-1]["content"] == "Is it vulnerable?"

    def test_empty_content(self, mock_http):
        """Test that an answer without content is an error."""
        sender, _ = mock_http(ok({"content": []}))
        response = AnthropicClient("k", http=sender).complete("x")
        assert response.error_message == "No response content from Anthropic Claude"

    def test_unauthorized(self, mock_http):
        """Test that status and body are reported."""
        sender, _ = mock_http(lambda req: httpx.Response(401, text="invalid x-api-key"))
        response = AnthropicClient("bad", http=sender).complete("x")
        assert response.error_message == "Anthropic Claude API error (HTTP 401): invalid x-api-key"


class TestOpenAI:
    """Tests for OpenAIClient."""

    def test_complete(self, mock_http):
        """Test the bearer token and the synthetic system message."""
        sender, recorder = mock_http(ok({
            "choices": [{"message": {"role": "assistant", "content": "Hi"}}],
            "usage": {"prompt_tokens": 9, "completion_tokens": 2, "total_tokens": 11},
        }))
        response = OpenAIClient("sk-test", http=sender).complete("hello", system_prompt="sys")

        assert response.content == "Hi"
        assert response.tokens_used == 11
        request = recorder.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content)["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hello"},
        ]

    def test_chat_keeps_history_roles(self, mock_http):
        """Test that history keeps its roles, system included."""
        sender, recorder = mock_http(ok({"choices": [{"message": {"content": "ok"}}]}))
        OpenAIClient("k", http=sender).chat(HISTORY, "next")
        roles = [m["role"] for m in json.loads(recorder.requests[0].content)["messages"]]
        assert roles == ["system", "user", "assistant", "user"]

    def test_no_choices(self, mock_http):
        """Test that an answer without choices is an error."""
        sender, _ = mock_http(ok({"choices": []}))
        assert OpenAIClient("k", http=sender).complete("x").error_message == (
            "No response content from OpenAI"
        )


class TestGemini:
    """Tests for GeminiClient."""

    def test_complete(self, mock_http):
        """Test the URL, key header and system instruction."""
        sender, recorder = mock_http(ok({
            "candidates": [{"content": {"parts": [{"text": "Hi"}], "role": "model"}}],
            "usageMetadata": {"totalTokenCount": 13},
        }))
        response = GeminiClient("g-key", "gemini-2.5-flash", http=sender).complete(
            "hello", system_prompt="sys"
        )

        assert response.content == "Hi"
        assert response.tokens_used == 13
        request = recorder.requests[0]
        assert str(request.url) == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
        )
        assert request.headers["x-goog-api-key"] == "g-key"
        assert "key=" not in str(request.url)
        body = json.loads(request.content)
        assert body["system_instruction"] == {"parts": [{"text": "sys"}]}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "hello"}]}]

    def test_chat_maps_assistant_to_model(self, mock_http):
        """Test role mapping and system extraction."""
        sender, recorder = mock_http(ok({"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}))
        GeminiClient("k", http=sender).chat(HISTORY, "next")
        body = json.loads(recorder.requests[0].content)
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["system_instruction"]["parts"][0]["text"] == "You are a web security expert."

    def test_no_candidates(self, mock_http):
        """Test that a blocked answer is an error."""
        sender, _ = mock_http(ok({"candidates": []}))
        assert GeminiClient("k", http=sender).complete("x").error_message == (
            "No response content from Google Gemini"
        )


@pytest.mark.integration
class TestRealBackends:
    """Integration tests against real cloud APIs."""

    def test_anthropic(self, api_keys):
        """Integration test: Anthropic answers the connection test."""
        if not api_keys["anthropic"]:
            pytest.skip("ANTHROPIC_API_KEY not set")
        assert AnthropicClient(api_keys["anthropic"]).test_connection()

    def test_openai(self, api_keys):
        """Integration test: OpenAI answers the connection test."""
        if not api_keys["openai"]:
            pytest.skip("OPENAI_API_KEY not set")
        assert OpenAIClient(api_keys["openai"]).test_connection()

    def test_gemini(self, api_keys):
        """Integration test: Gemini answers the connection test."""
        if not api_keys["gemini"]:
            pytest.skip("GEMINI_API_KEY not set")
        assert GeminiClient(api_keys["gemini"]).test_connection()
