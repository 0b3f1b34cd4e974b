"""
aipal: one interface over local, cloud and command-line LLM backends.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .conversation import ConversationHistory, ConversationListener
from .execution import WorkerPool
from .llm import (
    CancellationToken,
    LLMClient,
    LLMResponse,
    Message,
    Role,
    StreamSink,
    create_llm_client,
    has_valid_config,
)

__all__ = [
    "CancellationToken",
    "ConversationHistory",
    "ConversationListener",
    "LLMClient",
    "LLMResponse",
    "Message",
    "Role",
    "StreamSink",
    "WorkerPool",
    "create_llm_client",
    "has_valid_config",
]
