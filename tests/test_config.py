import pytest

import config
from config import ConfigError, Settings, load_settings


def test_defaults_fall_back_to_host_values():
    settings = Settings({"host_addr": "127.0.0.1", "host_port": 9000})

    assert settings.web_address == "127.0.0.1"
    assert settings.http_port == 9000
    assert settings.oauth_timeout == 10.0
    assert settings.storage_type == "filesystem"


def test_default_token_is_refused_on_public_addresses():
    with pytest.raises(ConfigError):
        Settings({"host_addr": "0.0.0.0"}).validate()

    Settings({"host_addr": "localhost"}).validate()
    Settings({"host_addr": "0.0.0.0", "token": "real"}).validate()


def test_supabase_requires_credentials():
    with pytest.raises(ConfigError):
        Settings({"storage_type": "supabase"}).validate()
    with pytest.raises(ConfigError):
        Settings({"storage_type": "redis"}).validate()


def test_repr_hides_secrets():
    text = repr(Settings({"token": "hunter2", "dwa_client_secret": "s3cret", "web_address": "example.org"}))

    assert "hunter2" not in text
    assert "s3cret" not in text
    assert "example.org" in text


def test_load_settings_reads_the_environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config, "load_env", lambda package_dir=None: None)
    monkeypatch.setenv("HOST_ADDR", "0.0.0.0")
    monkeypatch.setenv("TOKEN", "abc")
    monkeypatch.setenv("WEB_ADDRESS", "verify.example.org")
    monkeypatch.setenv("HTTP_PORT", "443")
    monkeypatch.setenv("LOOPBACK_SUBSTITUTION", "off")
    monkeypatch.setenv("dwa_client_id", "lowercase-id")
    monkeypatch.delenv("DWA_CLIENT_ID", raising=False)
    monkeypatch.setenv("LOG_FORMAT", "json")

    settings = load_settings()

    assert settings.host_addr == "0.0.0.0"
    assert settings.web_address == "verify.example.org"
    assert settings.http_port == 443
    assert settings.loopback_substitution is False
    assert settings.dwa_client_id == "lowercase-id"
    assert settings.log_json is True
    settings.validate()
