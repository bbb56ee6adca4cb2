"""Verified membership list endpoints.

GET/HEAD return the list as JSON. POST/PUT/DELETE modify it and require the
service token. Fields (`method`, `<account>`, `discord`, `token`) come from
the form body, falling back to request headers; a raw string request is
parsed as header lines.
"""

import json
import logging
from datetime import datetime

from fastapi import APIRouter, Request
from fastapi.responses import Response

from config import DEFAULT_TOKEN
from request_context import (
    ALL_METHODS,
    EndpointRequest,
    EndpointResult,
    RequestContext,
    from_request,
    method_not_allowed,
    parse_headers,
    text_result,
)
from verified.storage import VerifyListStorage

logger = logging.getLogger(__name__)


def _json_result(payload) -> EndpointResult:
    content = json.dumps(payload)
    return EndpointResult(
        200,
        {"Content-Type": "application/json", "Content-Length": str(len(content.encode()))},
        content,
    )


class VerifiedEndpoint:
    """Read and modify one verified list (ss13 or ss14 accounts)."""

    def __init__(self, storage: VerifyListStorage, token: str, account_field: str = "ss13", paths=("/verified",)):
        self.storage = storage
        self.token = token
        self.account_field = account_field
        self.paths = tuple(paths)

    def __repr__(self) -> str:
        return f"VerifiedEndpoint(account_field={self.account_field!r}, paths={self.paths!r})"

    def handle(self, method: str, request: EndpointRequest, bypass_token: bool = False) -> EndpointResult:
        if method in ("GET", "HEAD"):
            return _json_result(self.storage.get())
        if method in ("POST", "PUT", "DELETE"):
            return self.post(request, bypass_token)
        return method_not_allowed()

    def _fields(self, request: EndpointRequest) -> dict[str, str]:
        if isinstance(request, RequestContext):
            source = {**request.headers, **{k.lower(): v for k, v in request.form.items()}}
        elif isinstance(request, str):
            source = parse_headers(request)
        else:
            source = {}

        account = source.get(self.account_field) or source.get("ckey", "")
        return {
            "method": source.get("method", "").strip().lower(),
            "account": account.strip(),
            "discord": source.get("discord", "").strip(),
            "token": source.get("token", "").strip(),
        }

    def post(self, request: EndpointRequest, bypass_token: bool = False) -> EndpointResult:
        fields = self._fields(request)

        if not bypass_token and (self.token == DEFAULT_TOKEN or fields["token"] != self.token):
            logger.info("[VERIFIED] Rejected write with missing or invalid token")
            return text_result(401, "Unauthorized")

        if fields["method"] == "delete":
            return self.delete(fields["account"], fields["discord"])
        return self.add(fields["account"], fields["discord"])

    def add(self, account: str, discord: str) -> EndpointResult:
        records = self.storage.get()
        if any(r.get(self.account_field) == account for r in records) or any(
            r.get("discord") == discord for r in records
        ):
            return text_result(403, "Forbidden")

        self.storage.append({
            self.account_field: account,
            "discord": discord,
            "create_time": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        })
        logger.info(f"[VERIFIED] Added {self.account_field}={account}")
        return _json_result(self.storage.get())

    def delete(self, account: str, discord: str) -> EndpointResult:
        records = self.storage.get()
        index = next((i for i, r in enumerate(records) if r.get(self.account_field) == account), None)
        if index is None:
            index = next((i for i, r in enumerate(records) if r.get("discord") == discord), None)
        if index is None:
            return text_result(404, "Not Found")

        removed = self.storage.remove(index)
        logger.info(f"[VERIFIED] Removed {self.account_field}={removed.get(self.account_field)}")
        return _json_result([removed])


def _route_handler(endpoint: VerifiedEndpoint):
    async def handle(request: Request) -> Response:
        context = await from_request(request)
        result = endpoint.handle(request.method, context)
        return result.to_response(include_body=request.method != "HEAD")

    return handle


def create_router(endpoints: list[VerifiedEndpoint]) -> APIRouter:
    router = APIRouter(tags=["verified"])
    for endpoint in endpoints:
        for path in endpoint.paths:
            router.add_api_route(path, _route_handler(endpoint), methods=ALL_METHODS)
            logger.info(f"[STARTUP] Verified list ({endpoint.account_field}) mounted at {path}")
    return router
