"""OAuth2 authorization-code flow against one identity provider.

An Authenticator is built per request. It reads and writes the shared
SessionStore entry for (provider name, requester address) and talks to the
provider's token / userinfo / revocation endpoints server-to-server.

Flow:
1. `login()` redirects the browser to the provider's consent screen with the
   session's state nonce.
2. The provider redirects back with `code` and `state`; `exchange_code()`
   checks the state and trades the code for an access token.
3. `fetch_user()` loads the profile with the bearer token and caches it.
4. `revoke_token()` / `logout()` undo 2-3.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from oauth.errors import (
    InvalidRequest,
    OAuthError,
    ProviderError,
    StateMismatch,
    TransportError,
    UnsupportedOperation,
)
from oauth.providers import ProviderConfig
from oauth.stores import SessionStore
from request_context import EndpointResult, RequestContext

logger = logging.getLogger(__name__)

STEAM_PROFILE_URL = "https://steamcommunity.com/profiles/{id}/"


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class SiteConfig:
    """How this service is reached from the outside."""

    web_address: str
    http_port: int
    resolved_ip: str = ""
    scheme: str = "http"
    substitute_loopback: bool = True
    timeout: float = 10.0


def is_loopback(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _netloc(host: str, port: int) -> str:
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}"


def redirect(location: str) -> EndpointResult:
    return EndpointResult(302, {"Location": location}, "")


class Authenticator:
    """Drives one provider's authorization-code flow for one requester."""

    def __init__(
        self,
        request: RequestContext,
        provider: ProviderConfig,
        sessions: SessionStore,
        site: SiteConfig,
        credentials: ClientCredentials,
        scope: Optional[str] = None,
    ):
        if not isinstance(request, RequestContext):
            raise InvalidRequest("String requests are not supported.")

        self.provider = provider
        self.sessions = sessions
        self.site = site
        self.credentials = credentials
        self.scope = scope or provider.scope
        self.endpoint_name = provider.name
        self.requester_key = request.remote_addr or "127.0.0.1"

        scheme, port = site.scheme, site.http_port
        host = request.host
        if site.substitute_loopback and site.resolved_ip and is_loopback(host):
            host = site.resolved_ip
        self.default_redirect = f"{scheme}://{_netloc(host, port)}{request.path.split('?')[0]}"

        self.redirect_home = f"{scheme}://{_netloc(site.web_address, port)}"
        # First entry doubles as the fallback for rejected redirect URIs
        self.allowed_uris = [f"{self.redirect_home}/{self.endpoint_name}", self.redirect_home]
        if site.resolved_ip and site.resolved_ip != site.web_address:
            resolved_home = f"{scheme}://{_netloc(site.resolved_ip, port)}"
            self.allowed_uris.append(f"{resolved_home}/")
            self.allowed_uris.append(f"{resolved_home}/{self.endpoint_name}")

        self.state = sessions.get_or_create_nonce(self.endpoint_name, self.requester_key)
        session = sessions.get(self.endpoint_name, self.requester_key)
        self.access_token: Optional[str] = session.access_token if session else None
        self.user: Optional[Any] = session.user if session and self.access_token else None

    @classmethod
    async def create(cls, *args, **kwargs) -> "Authenticator":
        """Build an Authenticator and load the profile if a token is held."""
        authenticator = cls(*args, **kwargs)
        await authenticator.refresh_user()
        return authenticator

    def __repr__(self) -> str:
        return (
            f"Authenticator(endpoint={self.endpoint_name!r}, requester={self.requester_key!r}, "
            f"authenticated={self.is_authenticated()})"
        )

    async def refresh_user(self) -> None:
        """Best-effort profile load; on failure the requester is simply not authenticated."""
        if not self.access_token or self.user is not None:
            return
        try:
            await self.fetch_user()
        except (OAuthError, TransportError) as e:
            logger.warning(f"[OAUTH] Profile refresh failed for {self.endpoint_name}/{self.requester_key}: {e}")
            self.user = None

    async def _api_request(self, url: str, data: Optional[dict] = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            async with httpx.AsyncClient(timeout=self.site.timeout) as client:
                if data is not None:
                    response = await client.post(url, data=data, headers=headers)
                else:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__} calling {url}") from e

        if not response.content:
            payload = {}
        else:
            try:
                payload = response.json()
            except ValueError as e:
                raise TransportError(f"JSON decode error from {url}") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise ProviderError(str(payload["error"]))
        if response.is_error:
            raise ProviderError(str(response.status_code))
        return payload

    def login(self, redirect_uri: Optional[str] = None, scope: Optional[str] = None) -> EndpointResult:
        """Redirect to the provider's consent screen."""
        if not self.provider.can_login:
            return UnsupportedOperation().as_result()

        redirect_uri = redirect_uri or self.default_redirect
        if redirect_uri not in self.allowed_uris:
            logger.info(f"[OAUTH] Rejected redirect_uri for {self.endpoint_name}: {redirect_uri}")
            return redirect(f"{self.allowed_uris[0]}?login")

        query = urlencode({
            "client_id": self.credentials.client_id,
            "response_type": "code",
            "scope": scope or self.scope,
            "state": self.state,
            "redirect_uri": redirect_uri,
        })
        return redirect(f"{self.provider.url(self.provider.authorize_path)}?{query}")

    async def exchange_code(
        self, code: str, state: str, redirect_uri: Optional[str] = None
    ) -> tuple[EndpointResult, Optional[str]]:
        """Trade an authorization code for an access token.

        Returns the response to send and the access token (None on failure).
        Raises TransportError when the provider cannot be reached.
        """
        if self.access_token:
            return redirect(self.redirect_home), self.access_token

        try:
            if not self.provider.can_exchange:
                raise UnsupportedOperation()
            if state != self.state:
                raise StateMismatch()

            payload = await self._api_request(
                self.provider.url(self.provider.token_path),
                {
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri or self.default_redirect,
                },
            )
        except OAuthError as e:
            logger.info(f"[OAUTH] Code exchange failed for {self.endpoint_name}/{self.requester_key}: {e}")
            return e.as_result(), None

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise TransportError("Token response has no access_token")

        self.access_token = token
        self.sessions.set_token(self.endpoint_name, self.requester_key, token)
        logger.info(f"[OAUTH] Access token stored for {self.endpoint_name}/{self.requester_key}")
        return redirect(self.redirect_home), token

    async def fetch_user(self) -> Optional[Any]:
        """Return the cached profile, loading it from the provider if needed."""
        if self.user is not None:
            self.sessions.set_user(self.endpoint_name, self.requester_key, self.user)
            return self.user
        if not self.provider.can_fetch_user or not self.access_token:
            return None

        user = await self._api_request(self.provider.url(self.provider.userinfo_path))
        self.user = user
        self.sessions.set_user(self.endpoint_name, self.requester_key, user)
        return user

    async def fetch_connections(self) -> Optional[list]:
        """Load linked third-party accounts and record them in the session.

        Raises UnsupportedOperation when the provider has no connections endpoint.
        """
        if not self.provider.can_fetch_connections:
            raise UnsupportedOperation()
        if not self.access_token:
            return None

        connections = await self._api_request(self.provider.url(self.provider.connections_path))
        if not isinstance(connections, list):
            return None
        for connection in connections:
            if not isinstance(connection, dict) or "type" not in connection:
                continue
            kind = connection["type"]
            self.sessions.set_extra(self.endpoint_name, self.requester_key, f"oauth_{kind}_id", connection.get("id"))
            self.sessions.set_extra(self.endpoint_name, self.requester_key, f"oauth_{kind}_name", connection.get("name"))
            if kind == "steam":
                self.sessions.set_extra(
                    self.endpoint_name, self.requester_key,
                    "oauth_steam_url", STEAM_PROFILE_URL.format(id=connection.get("id")),
                )
        return connections

    def get_guild(self, guild_id: str) -> Optional[dict]:
        if not isinstance(self.user, dict):
            return None
        for guild in self.user.get("guilds") or []:
            if isinstance(guild, dict) and guild.get("id") == guild_id:
                return guild
        return None

    def is_authenticated(self) -> bool:
        return self.user is not None

    def logout(self) -> EndpointResult:
        self.sessions.delete(self.endpoint_name, self.requester_key)
        self.access_token = None
        self.user = None
        logger.info(f"[OAUTH] Session removed for {self.endpoint_name}/{self.requester_key}")
        return redirect(self.redirect_home)

    async def revoke_token(self) -> EndpointResult:
        """Revoke the access token at the provider and forget it locally.

        The local token is cleared even when the provider call fails; a
        TransportError still propagates after clearing.
        """
        if not self.provider.can_revoke:
            return UnsupportedOperation().as_result()

        try:
            if self.access_token:
                await self._api_request(
                    self.provider.url(self.provider.revoke_path),
                    {
                        "client_id": self.credentials.client_id,
                        "client_secret": self.credentials.client_secret,
                        "token": self.access_token,
                        "token_type_hint": "access_token",
                    },
                )
        except ProviderError as e:
            logger.warning(f"[OAUTH] Provider refused revocation for {self.endpoint_name}/{self.requester_key}: {e}")
        finally:
            self.sessions.clear_token(self.endpoint_name, self.requester_key)
            self.access_token = None
            self.user = None

        return redirect(self.redirect_home)
