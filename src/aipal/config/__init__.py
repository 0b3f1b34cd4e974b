"""Backend identifiers and immutable backend configuration."""

from .providers import ProviderKind
from .settings import (
    AnthropicConfig,
    BedrockConfig,
    CliAgentConfig,
    GeminiConfig,
    LLMSettings,
    OllamaConfig,
    OpenAIConfig,
    models_for_provider,
)

__all__ = [
    "AnthropicConfig",
    "BedrockConfig",
    "CliAgentConfig",
    "GeminiConfig",
    "LLMSettings",
    "OllamaConfig",
    "OpenAIConfig",
    "ProviderKind",
    "models_for_provider",
]
