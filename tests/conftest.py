import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from config import Settings
from main import create_app
from oauth.authenticator import Authenticator, ClientCredentials, SiteConfig
from oauth.providers import SS14
from oauth.stores import MemorySessionStore
from request_context import RequestContext

WEB_ADDRESS = "verifier.test"
HTTP_PORT = 8080
HOME = f"http://{WEB_ADDRESS}:{HTTP_PORT}"
SS14_TOKEN_URL = "https://account.spacestation14.com/connect/token"
SS14_USERINFO_URL = "https://account.spacestation14.com/connect/userinfo"
SS14_REVOKE_URL = "https://account.spacestation14.com/connect/revocation"
DISCORD_API = "https://discord.com/api/v10"


@pytest.fixture()
def settings(tmp_path):
    return Settings({
        "host_addr": "127.0.0.1",
        "host_port": HTTP_PORT,
        "web_address": WEB_ADDRESS,
        "http_port": HTTP_PORT,
        "token": "secret-token",
        "json_path": str(tmp_path / "json" / "verify.json"),
        "ss14_json_path": str(tmp_path / "json" / "ss14verify.json"),
        "ss14_client_id": "ss14-client",
        "ss14_client_secret": "ss14-secret",
        "dwa_client_id": "discord-client",
        "dwa_client_secret": "discord-secret",
        "oauth_timeout": 5,
    })


@pytest.fixture()
def sessions():
    return MemorySessionStore()


@pytest.fixture()
def site():
    return SiteConfig(web_address=WEB_ADDRESS, http_port=HTTP_PORT, resolved_ip="203.0.113.7")


@pytest.fixture()
def credentials():
    return ClientCredentials("ss14-client", "ss14-secret")


@pytest.fixture()
def app(settings, sessions):
    return create_app(settings, session_store=sessions)


def make_context(path="/ss14wa", query=None, remote_addr="10.0.0.5", host=WEB_ADDRESS, method="GET"):
    return RequestContext(
        method=method,
        remote_addr=remote_addr,
        host=host,
        path=path,
        query=query or {},
    )


@pytest.fixture()
def make_authenticator(sessions, site, credentials):
    def _make(provider=SS14, **context_kwargs):
        context_kwargs.setdefault("path", f"/{provider.name}")
        return Authenticator(make_context(**context_kwargs), provider, sessions, site, credentials)

    return _make


@pytest.fixture()
def call_app(app):
    """Issue one request against the app as the given client address."""

    def _call(method, url, remote_addr="10.0.0.5", **kwargs):
        async def _run():
            transport = ASGITransport(app=app, client=(remote_addr, 50000))
            async with AsyncClient(transport=transport, base_url=HOME) as client:
                return await client.request(method, url, **kwargs)

        return asyncio.run(_run())

    return _call
