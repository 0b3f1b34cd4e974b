"""Text preparation shared by adapters."""

from collections.abc import Sequence

from .models import Message


def sanitize_text(text: str | None) -> str | None:
    """Make a string safely encodable as UTF-8.

    Captured traffic decoded with ``surrogateescape`` or read from UTF-16
    sources can carry surrogate code points. Valid high/low pairs are joined
    into the character they encode and lone surrogates become U+FFFD.
    """
    if not text:
        return text
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def flatten_transcript(history: Sequence[Message], new_message: str | None) -> str:
    """Flatten a conversation into one role-labelled text block.

    Used for backends that accept a single textual prompt. Each turn is
    rendered as ``Label: content`` and turns are separated by a blank line.
    """
    parts = [f"{msg.role.label}: {msg.full_content}\n\n" for msg in history]
    if new_message:
        parts.append(f"User: {new_message}")
    return "".join(parts)
