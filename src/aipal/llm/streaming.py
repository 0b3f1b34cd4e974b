"""Cancellation and event delivery for streaming calls.

This module hides the event grammar of a stream: zero or more chunks
followed by exactly one terminal event, nothing after it, and nothing
terminal once the caller has cancelled. Adapters push events into a
StreamSink without having to re-check those rules themselves.
"""

import logging
import threading
from collections.abc import Callable

from .models import StreamChunk, StreamComplete, StreamError, StreamEvent

logger = logging.getLogger(__name__)


class CancellationToken:
    """A polled cancellation flag with resource-release callbacks.

    Adapters poll ``cancelled`` at chunk boundaries and register a callback
    that releases their transport (closes the HTTP response, kills the child
    process) so a reader blocked on I/O wakes up promptly.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Idempotent; callbacks run once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._run(callback)

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a release callback; runs immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        self._run(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.warning("Cancellation callback failed", exc_info=True)


class StreamSink:
    """Delivers stream events to a consumer while enforcing the event grammar.

    Usage:
        token = CancellationToken()
        sink = StreamSink(events.append, token)
        client.chat_streaming(history, "hello", sink)
        # events: [StreamChunk, ..., StreamComplete | StreamError]
    """

    def __init__(
        self,
        consumer: Callable[[StreamEvent], None],
        cancel_token: CancellationToken | None = None
    ) -> None:
        self._consumer = consumer
        self._token = cancel_token or CancellationToken()
        # Reentrant so a consumer may end the stream from inside a callback.
        self._lock = threading.RLock()
        self._finished = False

    @classmethod
    def from_callbacks(
        cls,
        on_chunk: Callable[[str], None],
        on_complete: Callable[[int], None],
        on_error: Callable[[str], None],
        cancel_token: CancellationToken | None = None
    ) -> "StreamSink":
        """Build a sink that dispatches each event type to its own callback."""
        def consume(event: StreamEvent) -> None:
            if isinstance(event, StreamChunk):
                on_chunk(event.text)
            elif isinstance(event, StreamComplete):
                on_complete(event.tokens_used)
            else:
                on_error(event.message)

        return cls(consume, cancel_token)

    @property
    def cancel_token(self) -> CancellationToken:
        return self._token

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    @property
    def finished(self) -> bool:
        """Whether a terminal event has been delivered."""
        return self._finished

    def chunk(self, text: str) -> bool:
        """Deliver a chunk. Returns False if the stream no longer accepts events."""
        if not text:
            return not (self._finished or self.cancelled)
        with self._lock:
            if self._finished or self.cancelled:
                return False
            self._consumer(StreamChunk(text=text))
            return True

    def complete(self, tokens_used: int = 0) -> bool:
        """Deliver the terminal success event."""
        return self._terminate(StreamComplete(tokens_used=max(tokens_used, 0)))

    def error(self, message: str) -> bool:
        """Deliver the terminal error event."""
        return self._terminate(StreamError(message=message))

    def _terminate(self, event: StreamEvent) -> bool:
        with self._lock:
            if self._finished or self.cancelled:
                return False
            self._finished = True
            self._consumer(event)
            return True
