"""Bounded conversation history with change listeners.

Hides how a chat session's messages are stored: a fixed-capacity buffer
that evicts the oldest message once full. Listeners are called on the
mutating thread; callers updating UI state must marshal onto their own
thread.
"""

import threading
from collections import deque
from collections.abc import Iterator

from ..llm.models import Message, Role

MAX_HISTORY_SIZE = 100


class ConversationListener:
    """Receives history change notifications. Override what you need."""

    def on_message_added(self, message: Message) -> None:
        pass

    def on_history_cleared(self) -> None:
        pass


class ConversationHistory:
    """Ordered messages of one chat session, capped at ``max_size``.

    Usage:
        history = ConversationHistory()
        history.add_user_message("What does this request do?", attached=raw_request)
        response = client.chat(history.messages(), "Is it vulnerable?")
    """

    def __init__(self, max_size: int = MAX_HISTORY_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._messages: deque[Message] = deque(maxlen=max_size)
        self._lock = threading.Lock()
        # Replaced on every change, so notification iterates a stable tuple.
        self._listeners: tuple[ConversationListener, ...] = ()

    @property
    def max_size(self) -> int:
        return self._messages.maxlen

    def add_message(self, message: Message) -> None:
        """Append a message, evicting the oldest when full, then notify."""
        with self._lock:
            self._messages.append(message)
            listeners = self._listeners
        for listener in listeners:
            listener.on_message_added(message)

    def add_user_message(self, content: str, attached: str | None = None) -> Message:
        message = Message(role=Role.USER, content=content, attached_context=attached)
        self.add_message(message)
        return message

    def add_assistant_message(self, content: str) -> Message:
        message = Message.assistant(content)
        self.add_message(message)
        return message

    def add_system_message(self, content: str) -> Message:
        message = Message.system(content)
        self.add_message(message)
        return message

    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the current messages, oldest first."""
        with self._lock:
            return tuple(self._messages)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            listeners = self._listeners
        for listener in listeners:
            listener.on_history_cleared()

    def size(self) -> int:
        with self._lock:
            return len(self._messages)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages())

    def is_empty(self) -> bool:
        return self.size() == 0

    def add_listener(self, listener: ConversationListener) -> None:
        with self._lock:
            self._listeners = (*self._listeners, listener)

    def remove_listener(self, listener: ConversationListener) -> None:
        with self._lock:
            self._listeners = tuple(known for known in self._listeners if known is not listener)
