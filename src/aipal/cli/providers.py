"""Client factory helpers for the CLI.

Centralizes creation of settings and LLM clients from environment variables.
Hides configuration details from command implementations.
"""

import typer
from rich.console import Console

from ..config import LLMSettings, ProviderKind
from ..errors import ConfigurationError
from ..llm import LLMClient, create_llm_client, has_valid_config

# Default console for output
_console = Console()


def get_settings(console: Console | None = None) -> LLMSettings:
    """Load settings from the environment.

    Raises:
        SystemExit: If a variable holds an invalid value
    """
    con = console or _console
    try:
        return LLMSettings.from_env()
    except ConfigurationError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def resolve_provider(settings: LLMSettings, name: str | None, console: Console | None = None) -> ProviderKind:
    """Parse a provider name, defaulting to the active provider.

    Raises:
        SystemExit: If the name is not a supported provider
    """
    con = console or _console
    if not name:
        return settings.active_provider
    try:
        return ProviderKind.parse(name)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def require_llm(
    settings: LLMSettings,
    provider: ProviderKind,
    console: Console | None = None
) -> LLMClient:
    """Get a client for a provider, refusing when it is not configured.

    Raises:
        SystemExit: If the provider fails its configuration pre-flight
    """
    con = console or _console
    if not has_valid_config(settings, provider):
        con.print(f"[red]Error: {provider.display_name} is not configured[/red]")
        con.print(f"[dim]{setup_hint(provider)}[/dim]")
        raise typer.Exit(code=1)
    return create_llm_client(provider, settings)


def setup_hint(provider: ProviderKind) -> str:
    """Which environment variables configure a provider."""
    return {
        ProviderKind.OLLAMA: "Set OLLAMA_BASE_URL (and OLLAMA_MODEL)",
        ProviderKind.BEDROCK: (
            "Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, BEDROCK_ACCESS_KEY and "
            "BEDROCK_SECRET_KEY, or add a profile to ~/.aws/credentials"
        ),
        ProviderKind.ANTHROPIC: "Set ANTHROPIC_API_KEY",
        ProviderKind.OPENAI: "Set OPENAI_API_KEY",
        ProviderKind.GEMINI: "Set GEMINI_API_KEY",
        ProviderKind.CLAUDE_CODE: "Set CLAUDE_CODE_PATH to the claude executable",
        ProviderKind.CODEX: "Set CODEX_PATH to the codex executable",
    }[provider]
