"""Outbound HTTP capability injected into every HTTP adapter.

Hides how requests leave the process. A host application that must observe
or approve outbound traffic implements HttpSender itself, or hands an
``httpx.Client`` with its own transport to HttpxSender.
"""

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol

import httpx

# Connect ceiling for every call; read ceiling for non-streaming calls.
CONNECT_TIMEOUT = 30.0
READ_TIMEOUT = 120.0

# Streaming reads may idle while a model loads, but not forever.
STREAM_READ_TIMEOUT = 60.0


def request_timeout(read: float = READ_TIMEOUT) -> httpx.Timeout:
    """Build the timeout used for adapter requests."""
    return httpx.Timeout(read, connect=CONNECT_TIMEOUT)


def build_post(
    url: str,
    body: bytes,
    headers: dict[str, str],
    read_timeout: float = READ_TIMEOUT
) -> httpx.Request:
    """Build a POST request that carries its own timeout ceilings.

    The timeout travels in the request extensions so it applies no matter
    which client or transport the host plugs in.
    """
    return httpx.Request(
        "POST",
        url,
        headers=headers,
        content=body,
        extensions={"timeout": request_timeout(read_timeout).as_dict()},
    )


class HttpSender(Protocol):
    """Capability to perform outbound HTTP requests."""

    def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request and return the fully read response."""
        ...

    def stream(self, request: httpx.Request) -> AbstractContextManager[httpx.Response]:
        """Send a request and return a context manager over the unread response."""
        ...


class HttpxSender:
    """HttpSender backed by a synchronous ``httpx.Client``."""

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(timeout=request_timeout())
        self._owns_client = client is None

    def send(self, request: httpx.Request) -> httpx.Response:
        return self._client.send(request)

    @contextmanager
    def stream(self, request: httpx.Request) -> Iterator[httpx.Response]:
        response = self._client.send(request, stream=True)
        try:
            yield response
        finally:
            response.close()

    def close(self) -> None:
        """Close the underlying client if this sender created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxSender":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
