"""Config management for verifier-server."""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_TOKEN = "changeme"
LOCAL_ADDRESSES = ("127.0.0.1", "localhost", "::1")

# Keys that must never show up in repr() or logs
SECRET_KEYS = ("token", "ss14_client_secret", "dwa_client_secret", "supabase_anon_key")


class ConfigError(Exception):
    """Raised when the service cannot start with the given configuration."""


class Settings:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = data or {}

    def __repr__(self) -> str:
        visible = {k: v for k, v in self.data.items() if k not in SECRET_KEYS}
        return f"Settings({visible})"

    @property
    def host_addr(self) -> str:
        return self.data.get("host_addr", "127.0.0.1")

    @property
    def host_port(self) -> int:
        return int(self.data.get("host_port", 8080))

    @property
    def web_address(self) -> str:
        return self.data.get("web_address") or self.host_addr

    @property
    def http_port(self) -> int:
        return int(self.data.get("http_port") or self.host_port)

    @property
    def web_scheme(self) -> str:
        return self.data.get("web_scheme", "http")

    @property
    def resolved_ip(self) -> str:
        return self.data.get("resolved_ip", "")

    @property
    def loopback_substitution(self) -> bool:
        return bool(self.data.get("loopback_substitution", True))

    @property
    def token(self) -> str:
        return self.data.get("token", DEFAULT_TOKEN)

    @property
    def storage_type(self) -> str:
        return self.data.get("storage_type", "filesystem")

    @property
    def json_path(self) -> str:
        return self.data.get("json_path", "json/verify.json")

    @property
    def ss14_json_path(self) -> str:
        return self.data.get("ss14_json_path", "json/ss14verify.json")

    @property
    def supabase_url(self) -> str:
        return self.data.get("supabase_url", "")

    @property
    def supabase_anon_key(self) -> str:
        return self.data.get("supabase_anon_key", "")

    @property
    def ss14_client_id(self) -> str:
        return self.data.get("ss14_client_id", "")

    @property
    def ss14_client_secret(self) -> str:
        return self.data.get("ss14_client_secret", "")

    @property
    def dwa_client_id(self) -> str:
        return self.data.get("dwa_client_id", "")

    @property
    def dwa_client_secret(self) -> str:
        return self.data.get("dwa_client_secret", "")

    @property
    def oauth_timeout(self) -> float:
        return float(self.data.get("oauth_timeout", 10.0))

    @property
    def log_level(self) -> str:
        return self.data.get("log_level", "INFO").upper()

    @property
    def log_json(self) -> bool:
        return self.data.get("log_format", "plain").lower() == "json"

    def validate(self) -> None:
        """Refuse configurations that are unsafe or cannot work."""
        if self.token == DEFAULT_TOKEN and self.host_addr not in LOCAL_ADDRESSES:
            raise ConfigError("Cannot use default token with non-localhost address!")
        if self.storage_type not in ("filesystem", "supabase"):
            raise ConfigError(f"Unknown STORAGE_TYPE: {self.storage_type}")
        if self.storage_type == "supabase" and not (self.supabase_url and self.supabase_anon_key):
            raise ConfigError("STORAGE_TYPE=supabase requires SUPABASE_URL and SUPABASE_ANON_KEY")


def load_env(package_dir: Optional[Path] = None) -> None:
    """Load .env (local override) or .env.public (bundled defaults)."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)
        return
    public_env = (package_dir or Path(__file__).parent) / ".env.public"
    if public_env.exists():
        load_dotenv(public_env)


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Build settings from the process environment."""
    load_env()
    data = {
        "host_addr": os.getenv("HOST_ADDR", "127.0.0.1"),
        "host_port": os.getenv("HOST_PORT", "8080"),
        "web_address": os.getenv("WEB_ADDRESS", ""),
        "http_port": os.getenv("HTTP_PORT", ""),
        "web_scheme": os.getenv("WEB_SCHEME", "http"),
        "resolved_ip": os.getenv("RESOLVED_IP", ""),
        "loopback_substitution": _flag(os.getenv("LOOPBACK_SUBSTITUTION", "true")),
        "token": os.getenv("TOKEN", DEFAULT_TOKEN),
        "storage_type": os.getenv("STORAGE_TYPE", "filesystem").lower(),
        "json_path": os.getenv("JSON_PATH", "json/verify.json"),
        "ss14_json_path": os.getenv("SS14_JSON_PATH", "json/ss14verify.json"),
        "supabase_url": os.getenv("SUPABASE_URL", ""),
        "supabase_anon_key": os.getenv("SUPABASE_ANON_KEY", ""),
        "ss14_client_id": os.getenv("SS14_OAUTH2_CLIENT_ID", ""),
        "ss14_client_secret": os.getenv("SS14_OAUTH2_CLIENT_SECRET", ""),
        "dwa_client_id": os.getenv("DWA_CLIENT_ID") or os.getenv("dwa_client_id", ""),
        "dwa_client_secret": os.getenv("DWA_CLIENT_SECRET") or os.getenv("dwa_client_secret", ""),
        "oauth_timeout": os.getenv("OAUTH_TIMEOUT", "10"),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_format": os.getenv("LOG_FORMAT", "plain"),
    }
    return Settings(data)
