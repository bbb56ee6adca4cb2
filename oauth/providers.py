"""Identity provider endpoint configuration.

Each provider is plain data: an issuer base URL plus path suffixes for the
authorize / token / userinfo / revoke endpoints. A provider with no issuer
(or a missing path) simply cannot perform the matching operation.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProviderConfig:
    """Static OIDC-style endpoint configuration for one identity provider."""

    name: str  # endpoint name, also the mount path ("/<name>")
    issuer: Optional[str] = None
    authorize_path: Optional[str] = None
    token_path: Optional[str] = None
    userinfo_path: Optional[str] = None
    revoke_path: Optional[str] = None
    scope: str = ""
    connections_path: Optional[str] = None
    oidc_config: Optional[str] = None

    def supports(self, path: Optional[str]) -> bool:
        return bool(self.issuer and path)

    def url(self, path: str) -> str:
        return f"{self.issuer}{path}"

    @property
    def can_login(self) -> bool:
        return self.supports(self.authorize_path)

    @property
    def can_exchange(self) -> bool:
        return self.supports(self.token_path)

    @property
    def can_fetch_user(self) -> bool:
        return self.supports(self.userinfo_path)

    @property
    def can_revoke(self) -> bool:
        return self.supports(self.revoke_path)

    @property
    def can_fetch_connections(self) -> bool:
        return self.supports(self.connections_path)


SS14 = ProviderConfig(
    name="ss14wa",
    issuer="https://account.spacestation14.com",
    authorize_path="/connect/authorize",
    token_path="/connect/token",
    userinfo_path="/connect/userinfo",
    revoke_path="/connect/revocation",
    scope="openid profile",
    oidc_config="https://account.spacestation14.com/.well-known/openid-configuration",
)

DISCORD = ProviderConfig(
    name="dwa",
    issuer="https://discord.com/api/v10",
    authorize_path="/oauth2/authorize",
    token_path="/oauth2/token",
    userinfo_path="/users/@me",
    revoke_path="/oauth2/token/revoke",
    scope="identify guilds connections",
    connections_path="/users/@me/connections",
    oidc_config="https://discord.com/.well-known/openid-configuration",
)

PROVIDERS = {provider.name: provider for provider in (SS14, DISCORD)}


def stub_provider(name: str) -> ProviderConfig:
    """A provider with no endpoints; every flow operation is unsupported."""
    return ProviderConfig(name=name)
