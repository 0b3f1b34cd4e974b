import logging
import os

from ..aws.credentials import resolve_credentials
from ..config.providers import ProviderKind
from ..config.settings import LLMSettings
from ..errors import ConfigurationError
from ..transport.http import HttpSender
from .base import LLMClient
from .providers import (
    AnthropicClient,
    BedrockClient,
    ClaudeCodeClient,
    CodexClient,
    GeminiClient,
    OllamaClient,
    OpenAIClient,
)


def create_llm_client(
    provider: ProviderKind | str | None = None,
    settings: LLMSettings | None = None,
    *,
    http: HttpSender | None = None,
    logger: logging.Logger | None = None
) -> LLMClient:
    """Create an LLM client for a backend.

    This factory function hides how each adapter is constructed from its
    configuration.

    Args:
        provider: Backend to build (default: the settings' active provider)
        settings: Backend configuration (default: read from the environment)
        http: Outbound HTTP capability shared by HTTP adapters
        logger: Logging sink handed to the adapter

    Returns:
        Initialized client. Incomplete configuration does not fail here; it
        surfaces as an error result on the first call.

    Raises:
        ConfigurationError: If the provider identifier names no backend

    Examples:
        >>> client = create_llm_client("ollama", LLMSettings())
        >>> client.provider_name
        'Ollama'
    """
    settings = settings or LLMSettings.from_env()
    try:
        kind = ProviderKind.parse(provider or settings.active_provider)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    if kind is ProviderKind.OLLAMA:
        cfg = settings.ollama
        return OllamaClient(base_url=cfg.base_url, model=cfg.model, http=http, logger=logger)

    if kind is ProviderKind.BEDROCK:
        cfg = settings.bedrock
        return BedrockClient(
            region=cfg.region,
            model=cfg.model,
            access_key=cfg.access_key,
            secret_key=cfg.secret_key,
            session_token=cfg.session_token,
            http=http,
            logger=logger,
        )

    if kind is ProviderKind.ANTHROPIC:
        cfg = settings.anthropic
        return AnthropicClient(api_key=cfg.api_key, model=cfg.model, http=http, logger=logger)

    if kind is ProviderKind.OPENAI:
        cfg = settings.openai
        return OpenAIClient(api_key=cfg.api_key, model=cfg.model, http=http, logger=logger)

    if kind is ProviderKind.GEMINI:
        cfg = settings.gemini
        return GeminiClient(api_key=cfg.api_key, model=cfg.model, http=http, logger=logger)

    if kind is ProviderKind.CLAUDE_CODE:
        cfg = settings.claude_code
        return ClaudeCodeClient(executable_path=cfg.executable_path, model=cfg.model, logger=logger)

    if kind is ProviderKind.CODEX:
        cfg = settings.codex
        return CodexClient(executable_path=cfg.executable_path, model=cfg.model, logger=logger)

    raise ConfigurationError(f"Unsupported provider: {provider}")


def is_executable(path: str) -> bool:
    """Whether a path names an existing, executable regular file."""
    path = (path or "").strip()
    return bool(path) and os.path.isfile(path) and os.access(path, os.X_OK)


def has_valid_config(settings: LLMSettings, provider: ProviderKind | str | None = None) -> bool:
    """Pre-flight check that a backend is configured well enough to try.

    Pure over the configuration (plus credential sources for Bedrock and the
    filesystem for CLI agents); performs no network or process I/O.

    Args:
        settings: Backend configuration
        provider: Backend to check (default: the active provider)
    """
    try:
        kind = ProviderKind.parse(provider or settings.active_provider)
    except ValueError:
        return False

    if kind is ProviderKind.OLLAMA:
        return bool(settings.ollama.base_url.strip())
    if kind is ProviderKind.BEDROCK:
        cfg = settings.bedrock
        return resolve_credentials(cfg.access_key, cfg.secret_key, cfg.session_token).is_valid
    if kind is ProviderKind.ANTHROPIC:
        return bool(settings.anthropic.api_key.strip())
    if kind is ProviderKind.OPENAI:
        return bool(settings.openai.api_key.strip())
    if kind is ProviderKind.GEMINI:
        return bool(settings.gemini.api_key.strip())
    if kind is ProviderKind.CLAUDE_CODE:
        return is_executable(settings.claude_code.executable_path)
    if kind is ProviderKind.CODEX:
        return is_executable(settings.codex.executable_path)
    return False
