from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import LLMResponse, Message
from .streaming import StreamSink

CONNECTION_TEST_PROMPT = "Say 'OK' if you can read this."


class LLMClient(ABC):
    """Abstract base class for LLM backend adapters.

    This module hides the design decision of which backend answers a prompt.
    Implementations must handle backend-specific details like:
    - Transport (signed HTTP, plain HTTP, child process)
    - Request/response format conversion
    - System prompt placement and token accounting

    Implementations never raise across this interface. Every failure is
    reported as an error LLMResponse or a terminal StreamError.
    """

    @abstractmethod
    def complete(self, prompt: str, system_prompt: str | None = None) -> LLMResponse:
        """Run a single-turn completion.

        Args:
            prompt: User prompt
            system_prompt: Optional system instructions, placed however the
                backend expects them

        Returns:
            LLMResponse with the answer or the failure description
        """

    @abstractmethod
    def chat(self, history: Sequence[Message], new_message: str) -> LLMResponse:
        """Run a multi-turn completion.

        The whole history is resent on every call; no server-side session is
        assumed.

        Args:
            history: Previous messages in order
            new_message: The new user message

        Returns:
            LLMResponse with the answer or the failure description
        """

    def chat_streaming(
        self,
        history: Sequence[Message],
        new_message: str,
        sink: StreamSink
    ) -> None:
        """Run a multi-turn completion, delivering the answer incrementally.

        The default strategy performs ``chat`` and replays its result as a
        single chunk followed by the terminal event. Adapters with native
        streaming override this.

        Args:
            history: Previous messages in order
            new_message: The new user message
            sink: Receives chunks and exactly one terminal event
        """
        response = self.chat(history, new_message)
        if response.success:
            sink.chunk(response.content)
            sink.complete(response.tokens_used)
        else:
            sink.error(response.error_message)

    @property
    def supports_streaming(self) -> bool:
        """Whether ``chat_streaming`` yields more than one chunk."""
        return False

    def test_connection(self) -> bool:
        """Check reachability and authentication with a minimal real call."""
        return self.complete(CONNECTION_TEST_PROMPT).success

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable backend name."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier used for requests."""
