"""Transport-neutral request record handed to endpoint handlers.

Endpoints receive either a RequestContext (built from a live HTTP request)
or a raw header string. Only RequestContext carries the remote address and
URI the OAuth flow needs.
"""

from dataclasses import dataclass, field
from typing import Mapping, Union

from fastapi import Request
from fastapi.responses import Response


FORM_METHODS = ("POST", "PUT", "DELETE", "PATCH")
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]


@dataclass(frozen=True)
class RequestContext:
    method: str
    remote_addr: str
    host: str
    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, str] = field(default_factory=dict)


# What endpoint handlers accept
EndpointRequest = Union[RequestContext, str]


@dataclass
class EndpointResult:
    """Status, headers and body produced by an endpoint handler."""

    status: int
    headers: dict = field(default_factory=dict)
    body: str = ""

    def to_response(self, include_body: bool = True) -> Response:
        return Response(
            content=self.body if include_body else b"",
            status_code=self.status,
            headers=self.headers,
        )


def text_result(status: int, body: str) -> EndpointResult:
    return EndpointResult(status, {"Content-Type": "text/plain"}, body)


def not_found() -> EndpointResult:
    return text_result(404, "Not Found")


def method_not_allowed() -> EndpointResult:
    return text_result(405, "Method Not Allowed")


async def from_request(request: Request) -> RequestContext:
    """Snapshot a Starlette request, decoding the form body when present."""
    form = {}
    content_type = request.headers.get("content-type", "")
    if request.method in FORM_METHODS and (
        content_type.startswith("application/x-www-form-urlencoded")
        or content_type.startswith("multipart/form-data")
    ):
        form_data = await request.form()
        form = {key: str(value) for key, value in form_data.items()}

    return RequestContext(
        method=request.method,
        remote_addr=request.client.host if request.client else "127.0.0.1",
        host=request.url.hostname or "",
        path=request.url.path,
        query=dict(request.query_params),
        headers={key.lower(): value for key, value in request.headers.items()},
        form=form,
    )


def parse_headers(raw: str) -> dict[str, str]:
    """Parse raw `Key: value` header lines (first line may be a request line)."""
    headers = {}
    for line in raw.splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        if key and key not in headers:
            headers[key] = value.strip()
    return headers
