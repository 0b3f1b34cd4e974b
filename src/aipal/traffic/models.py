from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field


class CapturedRequest(BaseModel):
    """An HTTP request as captured by the host's proxy."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(description="HTTP method")
    path: str = Field(description="Request target, including any query string")
    http_version: str = Field(default="1.1")
    headers: list[tuple[str, str]] = Field(default_factory=list, description="Headers in wire order")
    body: str = Field(default="")
    service_host: str | None = Field(default=None, description="Target host when no Host header exists")

    def header_value(self, name: str) -> str | None:
        """First value of a header, matched case-insensitively."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def host(self) -> str:
        return self.header_value("Host") or self.service_host or ""


class CapturedResponse(BaseModel):
    """An HTTP response as captured by the host's proxy."""

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(ge=100, le=999)
    reason_phrase: str = Field(default="")
    http_version: str = Field(default="1.1")
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: str = Field(default="")


class CapturedExchange(BaseModel):
    """A request and, once it arrived, its response."""

    model_config = ConfigDict(frozen=True)

    request: CapturedRequest
    response: CapturedResponse | None = None

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "CapturedExchange":
        """Capture an exchange performed with httpx (body must be read)."""
        request = response.request
        url = urlsplit(str(request.url))
        target = url.path or "/"
        if url.query:
            target = f"{target}?{url.query}"
        version = response.http_version.removeprefix("HTTP/")
        return cls(
            request=CapturedRequest(
                method=request.method,
                path=target,
                http_version=version,
                headers=list(request.headers.items()),
                body=request.content.decode("utf-8", errors="replace"),
                service_host=url.hostname,
            ),
            response=CapturedResponse(
                status_code=response.status_code,
                reason_phrase=response.reason_phrase,
                http_version=version,
                headers=list(response.headers.items()),
                body=response.text,
            ),
        )
