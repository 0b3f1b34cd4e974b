from .base import CONNECTION_TEST_PROMPT, LLMClient
from .factory import create_llm_client, has_valid_config
from .models import (
    LLMResponse,
    Message,
    Role,
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamEvent,
)
from .providers import (
    AnthropicClient,
    BedrockClient,
    ClaudeCodeClient,
    CodexClient,
    GeminiClient,
    OllamaClient,
    OpenAIClient,
)
from .streaming import CancellationToken, StreamSink
from .text import flatten_transcript, sanitize_text

__all__ = [
    "CONNECTION_TEST_PROMPT",
    "LLMClient",
    "create_llm_client",
    "has_valid_config",
    "LLMResponse",
    "Message",
    "Role",
    "StreamChunk",
    "StreamComplete",
    "StreamError",
    "StreamEvent",
    "CancellationToken",
    "StreamSink",
    "flatten_transcript",
    "sanitize_text",
    "AnthropicClient",
    "BedrockClient",
    "ClaudeCodeClient",
    "CodexClient",
    "GeminiClient",
    "OllamaClient",
    "OpenAIClient",
]
