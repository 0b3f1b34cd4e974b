"""Captured HTTP traffic and its rendering as prompt attachments."""

from .formatter import (
    format_compact,
    format_exchange,
    format_request,
    format_response,
    request_summary,
)
from .models import CapturedExchange, CapturedRequest, CapturedResponse

__all__ = [
    "CapturedExchange",
    "CapturedRequest",
    "CapturedResponse",
    "format_compact",
    "format_exchange",
    "format_request",
    "format_response",
    "request_summary",
]
