"""OAuth 2.0 login endpoints (one per identity provider).

Each provider is mounted at `/<endpoint name>` (e.g. `/ss14wa`, `/dwa`) and
dispatches on query parameters:
- `?code=...&state=...` - provider callback, exchange the code
- `?login`              - redirect to the provider's consent screen
- `?logout`             - forget the session
- `?remove`             - revoke the access token (authenticated only)
- `?user`               - profile as JSON (authenticated only)
- `?connections`        - linked accounts as JSON (authenticated only)
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response

from oauth.authenticator import Authenticator, ClientCredentials, SiteConfig
from oauth.errors import OAuthError
from oauth.providers import ProviderConfig
from oauth.stores import SessionStore
from request_context import (
    ALL_METHODS,
    EndpointRequest,
    EndpointResult,
    RequestContext,
    from_request,
    method_not_allowed,
    not_found,
    text_result,
)

logger = logging.getLogger(__name__)


def json_result(payload) -> EndpointResult:
    return EndpointResult(200, {"Content-Type": "application/json"}, json.dumps(payload))


class OAuthEndpoint:
    """Translates requests on one provider's mount path into flow operations."""

    def __init__(
        self,
        provider: ProviderConfig,
        sessions: SessionStore,
        site: SiteConfig,
        credentials: ClientCredentials,
    ):
        self.provider = provider
        self.sessions = sessions
        self.site = site
        self.credentials = credentials

    @property
    def path(self) -> str:
        return f"/{self.provider.name}"

    def __repr__(self) -> str:
        return f"OAuthEndpoint(provider={self.provider.name!r})"

    async def handle(self, method: str, request: EndpointRequest) -> Optional[EndpointResult]:
        """Return the response for this request, or None when no action matched."""
        if method == "GET":
            return await self.get(request)
        if method == "POST":
            return await self.post(request)
        return method_not_allowed()

    async def get(self, request: EndpointRequest) -> Optional[EndpointResult]:
        if not isinstance(request, RequestContext):
            return method_not_allowed()

        params = request.query
        if not params:
            return text_result(400, "Bad Request")

        auth = await Authenticator.create(
            request, self.provider, self.sessions, self.site, self.credentials
        )

        if "code" in params and "state" in params:
            result, _token = await auth.exchange_code(
                params["code"], params["state"], params.get("redirect_uri") or None
            )
            return result
        if "login" in params:
            return auth.login(params.get("redirect_uri") or None)
        if "logout" in params:
            return auth.logout()
        if "remove" in params and auth.is_authenticated():
            return await auth.revoke_token()
        try:
            if "user" in params and auth.is_authenticated():
                return json_result(await auth.fetch_user())
            if "connections" in params and auth.is_authenticated():
                return json_result(await auth.fetch_connections())
        except OAuthError as e:
            logger.info(f"[OAUTH] {self.provider.name} request failed: {e.body}")
            return e.as_result()
        return None

    async def post(self, request: EndpointRequest) -> Optional[EndpointResult]:
        return await self.get(request)


def _route_handler(endpoint: OAuthEndpoint):
    async def handle(request: Request) -> Response:
        context = await from_request(request)
        result = await endpoint.handle(request.method, context)
        return (result or not_found()).to_response()

    return handle


def create_router(endpoints: list[OAuthEndpoint]) -> APIRouter:
    """Mount each provider endpoint on its own path."""
    router = APIRouter(tags=["oauth"])

    for endpoint in endpoints:
        router.add_api_route(
            endpoint.path,
            _route_handler(endpoint),
            methods=ALL_METHODS,
            name=f"oauth_{endpoint.provider.name}",
            include_in_schema=True,
        )
        logger.info(f"[STARTUP] OAuth endpoint mounted at {endpoint.path}")

    return router
