"""Exception hierarchy shared across aipal.

Adapters never raise these across the LLMClient boundary; they are reserved
for programming and configuration mistakes the caller must fix.
"""


class AipalError(Exception):
    """Base class for aipal errors."""


class ConfigurationError(AipalError, ValueError):
    """Backend configuration is missing, malformed or unsupported."""


class WorkerPoolShutdownError(AipalError, RuntimeError):
    """Work was submitted to a worker pool that has been shut down."""
