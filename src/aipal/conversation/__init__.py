"""Chat session state shared between the caller and backend adapters."""

from .history import MAX_HISTORY_SIZE, ConversationHistory, ConversationListener

__all__ = ["MAX_HISTORY_SIZE", "ConversationHistory", "ConversationListener"]
