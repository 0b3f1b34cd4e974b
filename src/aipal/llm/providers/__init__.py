from ._cli import CliAgentClient
from .anthropic import AnthropicClient
from .bedrock import BedrockClient
from .claude_code import ClaudeCodeClient
from .codex import CodexClient
from .gemini import GeminiClient
from .ollama import OllamaClient
from .openai import OpenAIClient

__all__ = [
    "AnthropicClient",
    "BedrockClient",
    "CliAgentClient",
    "ClaudeCodeClient",
    "CodexClient",
    "GeminiClient",
    "OllamaClient",
    "OpenAIClient",
]
