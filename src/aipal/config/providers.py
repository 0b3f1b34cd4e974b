from enum import Enum


class ProviderKind(str, Enum):
    """Closed set of supported LLM backends."""

    OLLAMA = "ollama"              # Local inference server over HTTP
    BEDROCK = "bedrock"            # AWS Bedrock, SigV4-signed HTTP
    ANTHROPIC = "anthropic"        # Anthropic Messages API
    OPENAI = "openai"              # OpenAI chat completions
    GEMINI = "gemini"              # Google Gemini generateContent
    CLAUDE_CODE = "claude_code"    # Claude Code CLI subprocess
    CODEX = "codex"                # OpenAI Codex CLI subprocess

    @property
    def display_name(self) -> str:
        """Human-readable backend name."""
        return _DISPLAY_NAMES[self]

    @property
    def is_cli_agent(self) -> bool:
        """Whether the backend runs as a local command-line agent."""
        return self in (ProviderKind.CLAUDE_CODE, ProviderKind.CODEX)

    @classmethod
    def parse(cls, value: "str | ProviderKind") -> "ProviderKind":
        """Parse a provider identifier, accepting a few common aliases.

        Raises:
            ValueError: If the identifier names no supported backend
        """
        if isinstance(value, ProviderKind):
            return value
        key = value.strip().lower().replace("-", "_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            supported = ", ".join(kind.value for kind in cls)
            raise ValueError(
                f"Unsupported provider: {value}. Supported providers: {supported}"
            ) from None


_DISPLAY_NAMES = {
    ProviderKind.OLLAMA: "Ollama",
    ProviderKind.BEDROCK: "AWS Bedrock",
    ProviderKind.ANTHROPIC: "Anthropic Claude",
    ProviderKind.OPENAI: "OpenAI",
    ProviderKind.GEMINI: "Google Gemini",
    ProviderKind.CLAUDE_CODE: "Claude Code",
    ProviderKind.CODEX: "OpenAI Codex",
}

_ALIASES = {
    "claude": "anthropic",
    "claudecode": "claude_code",
    "aws": "bedrock",
}
