"""Immutable backend configuration.

Hides where configuration values come from. The host application owns
persistence; this module only models the values and can read them from
environment variables for standalone use.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import ConfigurationError
from .providers import ProviderKind

# Known model identifiers, offered to pickers. Never used for validation.
BEDROCK_MODELS = (
    "global.anthropic.claude-sonnet-4-5-20250929-v1:0",
    "global.anthropic.claude-sonnet-4-20250514-v1:0",
    "global.anthropic.claude-haiku-4-5-20251001-v1:0",
    "global.anthropic.claude-opus-4-5-20251101-v1:0",
)

BEDROCK_REGIONS = (
    "us-east-1",
    "us-west-2",
    "eu-west-1",
    "eu-central-1",
    "ap-southeast-1",
    "ap-northeast-1",
)

CLAUDE_CODE_MODELS = (
    "claude-sonnet-4-6",
    "claude-opus-4-6",
    "claude-haiku-4-5-20251001",
)

CODEX_MODELS = (
    "gpt-5.3-codex",
    "gpt-5.2-codex",
    "gpt-5.2",
    "gpt-5.1-codex-max",
    "gpt-5-codex-mini",
)


class OllamaConfig(BaseModel):
    """Local Ollama server settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="http://localhost:11434", description="Server base URL")
    model: str = Field(default="llama3.2", description="Model name as known to Ollama")


class BedrockConfig(BaseModel):
    """AWS Bedrock settings.

    Explicit keys are optional; blank keys defer to the environment and the
    shared credentials file.
    """

    model_config = ConfigDict(frozen=True)

    access_key: str = Field(default="", repr=False)
    secret_key: str = Field(default="", repr=False)
    session_token: str = Field(default="", repr=False)
    region: str = Field(default="us-east-1")
    model: str = Field(default="global.anthropic.claude-sonnet-4-5-20250929-v1:0")


class AnthropicConfig(BaseModel):
    """Anthropic Messages API settings."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    model: str = Field(default="claude-sonnet-4-20250514")


class OpenAIConfig(BaseModel):
    """OpenAI chat completions settings."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    model: str = Field(default="gpt-4o-mini")


class GeminiConfig(BaseModel):
    """Google Gemini settings."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(default="", repr=False)
    model: str = Field(default="gemini-2.5-flash")


class CliAgentConfig(BaseModel):
    """Settings for a command-line agent backend."""

    model_config = ConfigDict(frozen=True)

    executable_path: str = Field(default="", description="Absolute path to the CLI binary")
    model: str = Field(description="Model identifier passed on the command line")


class LLMSettings(BaseModel):
    """Complete backend configuration snapshot."""

    model_config = ConfigDict(frozen=True)

    active_provider: ProviderKind = Field(default=ProviderKind.OLLAMA)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    claude_code: CliAgentConfig = Field(
        default_factory=lambda: CliAgentConfig(model="claude-sonnet-4-6")
    )
    codex: CliAgentConfig = Field(
        default_factory=lambda: CliAgentConfig(model="gpt-5.3-codex")
    )

    def model_for(self, provider: ProviderKind) -> str:
        """Get the configured model identifier for a backend."""
        return self.config_for(provider).model

    def config_for(self, provider: ProviderKind) -> BaseModel:
        """Get the configuration object for a backend."""
        return getattr(self, ProviderKind.parse(provider).value)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LLMSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Settings with defaults for every unset variable

        Raises:
            ConfigurationError: If a value is present but invalid

        Environment variables:
            AIPAL_PROVIDER: Active backend (default: ollama)
            OLLAMA_BASE_URL, OLLAMA_MODEL
            BEDROCK_ACCESS_KEY, BEDROCK_SECRET_KEY, BEDROCK_SESSION_TOKEN,
            BEDROCK_REGION, BEDROCK_MODEL
            ANTHROPIC_API_KEY, ANTHROPIC_MODEL
            OPENAI_API_KEY, OPENAI_CHAT_MODEL
            GEMINI_API_KEY, GEMINI_MODEL
            CLAUDE_CODE_PATH, CLAUDE_CODE_MODEL
            CODEX_PATH, CODEX_MODEL
        """
        env = os.environ if environ is None else environ

        def pick(**mapping: str) -> dict[str, str]:
            return {field: env[var] for field, var in mapping.items() if env.get(var)}

        try:
            active = ProviderKind.parse(env.get("AIPAL_PROVIDER") or ProviderKind.OLLAMA)
            return cls(
                active_provider=active,
                ollama=OllamaConfig(**pick(base_url="OLLAMA_BASE_URL", model="OLLAMA_MODEL")),
                bedrock=BedrockConfig(**pick(
                    access_key="BEDROCK_ACCESS_KEY",
                    secret_key="BEDROCK_SECRET_KEY",
                    session_token="BEDROCK_SESSION_TOKEN",
                    region="BEDROCK_REGION",
                    model="BEDROCK_MODEL",
                )),
                anthropic=AnthropicConfig(**pick(api_key="ANTHROPIC_API_KEY", model="ANTHROPIC_MODEL")),
                openai=OpenAIConfig(**pick(api_key="OPENAI_API_KEY", model="OPENAI_CHAT_MODEL")),
                gemini=GeminiConfig(**pick(api_key="GEMINI_API_KEY", model="GEMINI_MODEL")),
                claude_code=CliAgentConfig(**{
                    "model": "claude-sonnet-4-6",
                    **pick(executable_path="CLAUDE_CODE_PATH", model="CLAUDE_CODE_MODEL"),
                }),
                codex=CliAgentConfig(**{
                    "model": "gpt-5.3-codex",
                    **pick(executable_path="CODEX_PATH", model="CODEX_MODEL"),
                }),
            )
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid LLM settings: {e}") from e


def models_for_provider(provider: ProviderKind) -> tuple[str, ...]:
    """Get the known model catalog for a backend (empty when user-specified)."""
    return {
        ProviderKind.BEDROCK: BEDROCK_MODELS,
        ProviderKind.CLAUDE_CODE: CLAUDE_CODE_MODELS,
        ProviderKind.CODEX: CODEX_MODELS,
    }.get(ProviderKind.parse(provider), ())
