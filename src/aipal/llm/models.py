from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

ATTACHMENT_SEPARATOR = "\n\n--- Attached HTTP Request/Response ---\n"


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    @property
    def label(self) -> str:
        """Label used when flattening a conversation into a transcript."""
        return self.value.capitalize()


class Message(BaseModel):
    """Represents a chat message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Role of the message sender")
    content: str = Field(description="Text typed or generated for this turn")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    attached_context: str | None = Field(
        default=None,
        description="Captured traffic or other context attached to the message"
    )

    @property
    def has_attached_context(self) -> bool:
        return bool(self.attached_context)

    @property
    def full_content(self) -> str:
        """Content as transmitted to a backend, with any attachment appended."""
        if self.has_attached_context:
            return f"{self.content}{ATTACHMENT_SEPARATOR}{self.attached_context}"
        return self.content

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str, attached_context: str | None = None) -> "Message":
        return cls(role=Role.USER, content=content, attached_context=attached_context)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class LLMResponse(BaseModel):
    """Outcome of a synchronous LLM call.

    Exactly one of ``content`` (success) or ``error_message`` (failure) is set.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = Field(description="Whether the call produced an answer")
    content: str | None = Field(default=None, description="Generated text content")
    error_message: str | None = Field(default=None, description="Human-readable failure")
    tokens_used: int = Field(default=0, ge=0, description="Input plus output tokens, 0 if unknown")

    @model_validator(mode="after")
    def _check_variant(self) -> "LLMResponse":
        if self.success and (self.content is None or self.error_message is not None):
            raise ValueError("successful response must carry content and no error")
        if not self.success and (self.error_message is None or self.content is not None):
            raise ValueError("failed response must carry an error and no content")
        return self

    @classmethod
    def ok(cls, content: str, tokens_used: int = 0) -> "LLMResponse":
        return cls(success=True, content=content, tokens_used=tokens_used)

    @classmethod
    def error(cls, message: str) -> "LLMResponse":
        return cls(success=False, error_message=message)

    def __str__(self) -> str:
        if self.success:
            preview = self.content if len(self.content) <= 100 else self.content[:100] + "..."
            return f"LLMResponse(success=True, content={preview!r})"
        return f"LLMResponse(success=False, error={self.error_message!r})"


class StreamChunk(BaseModel):
    """One incremental piece of streamed response text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["chunk"] = "chunk"
    text: str


class StreamComplete(BaseModel):
    """Terminal event of a successful stream."""

    model_config = ConfigDict(frozen=True)

    type: Literal["complete"] = "complete"
    tokens_used: int = Field(default=0, ge=0)


class StreamError(BaseModel):
    """Terminal event of a failed stream."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str


StreamEvent = Annotated[
    Union[StreamChunk, StreamComplete, StreamError],
    Field(discriminator="type"),
]
