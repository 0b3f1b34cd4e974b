"""Rendering of captured HTTP traffic as attachment text.

The rendered text is what ends up in ``Message.attached_context`` and thus
in prompts, so bodies are truncated to keep prompts within reason.
"""

from .models import CapturedExchange, CapturedRequest, CapturedResponse

MAX_BODY_LENGTH = 10000
COMPACT_BODY_LENGTH = 500


def _headers(headers: list[tuple[str, str]]) -> str:
    return "".join(f"{name}: {value}\n" for name, value in headers)


def _body(body: str, limit: int = MAX_BODY_LENGTH) -> str:
    if not body:
        return ""
    if len(body) > limit:
        return f"\n{body[:limit]}\n... [truncated, {len(body) - limit} more bytes]"
    return f"\n{body}"


def format_request(request: CapturedRequest) -> str:
    """Request line, headers and (possibly truncated) body."""
    line = f"{request.method} {request.path} HTTP/{request.http_version}\n"
    return line + _headers(request.headers) + _body(request.body)


def format_response(response: CapturedResponse) -> str:
    """Status line, headers and (possibly truncated) body."""
    line = f"HTTP/{response.http_version} {response.status_code} {response.reason_phrase}\n"
    return line + _headers(response.headers) + _body(response.body)


def format_exchange(exchange: CapturedExchange) -> str:
    """Full rendering with request and response sections."""
    text = "=== HTTP Request ===\n" + format_request(exchange.request)
    if exchange.response is not None:
        text += "\n\n=== HTTP Response ===\n" + format_response(exchange.response)
    return text


def format_compact(exchange: CapturedExchange) -> str:
    """Short rendering: request essentials, a body preview and the status."""
    request = exchange.request
    lines = [f"{request.method} {request.path}", f"Host: {request.host}"]
    content_type = request.header_value("Content-Type")
    if content_type is not None:
        lines.append(f"Content-Type: {content_type}")
    text = "\n".join(lines) + "\n"

    if request.body:
        preview = request.body
        if len(preview) > COMPACT_BODY_LENGTH:
            preview = preview[:COMPACT_BODY_LENGTH] + "..."
        text += f"\nRequest Body:\n{preview}"

    if exchange.response is not None:
        text += f"\n\nResponse: {exchange.response.status_code} {exchange.response.reason_phrase}"
    return text


def request_summary(exchange: CapturedExchange) -> str:
    """One line such as ``GET example.com/login``."""
    request = exchange.request
    return f"{request.method} {request.host}{request.path}"
