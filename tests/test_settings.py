"""Tests for environment-driven configuration."""
import pydantic
import pytest

from secretdrop.infrastructure.config.settings import Settings, split_binding_address

_VARS = [
    "SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS",
    "SUPERSECRETMESSAGE_HTTPS_BINDING_ADDRESS",
    "SUPERSECRETMESSAGE_HTTPS_REDIRECT_ENABLED",
    "SUPERSECRETMESSAGE_TLS_CERT_FILEPATH",
    "SUPERSECRETMESSAGE_TLS_CERT_KEY_FILEPATH",
    "SUPERSECRETMESSAGE_VAULT_PREFIX",
    "SUPERSECRETMESSAGE_ALLOWED_ORIGINS",
    "SUPERSECRETMESSAGE_BACKEND",
    "SUPERSECRETMESSAGE_LOG_LEVEL",
    "SUPERSECRETMESSAGE_FORWARDED_ALLOW_IPS",
    "VAULT_ADDR",
    "VAULT_TOKEN",
    "VAULT_TIMEOUT",
]


@pytest.fixture
def env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)

    def set_env(**values):
        for name, value in values.items():
            monkeypatch.setenv(name, value)

    return set_env


class TestFromEnv:
    def test_defaults(self, env):
        env(SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS=":8080")
        settings = Settings.from_env()

        assert settings.vault_prefix == "cubbyhole/"
        assert settings.backend == "vault"
        assert settings.https_redirect_enabled is False
        assert settings.allowed_origins == []
        assert settings.vault_token is None
        assert settings.vault_timeout == 30
        assert settings.tls_enabled is False
        assert settings.forwarded_allow_ips == "*"

    def test_all_values(self, env):
        env(
            SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS=":80",
            SUPERSECRETMESSAGE_HTTPS_BINDING_ADDRESS=":443",
            SUPERSECRETMESSAGE_HTTPS_REDIRECT_ENABLED="True",
            SUPERSECRETMESSAGE_TLS_CERT_FILEPATH="/certs/cert.pem",
            SUPERSECRETMESSAGE_TLS_CERT_KEY_FILEPATH="/certs/key.pem",
            SUPERSECRETMESSAGE_VAULT_PREFIX="secret/msgs/",
            SUPERSECRETMESSAGE_ALLOWED_ORIGINS="https://a.example, https://b.example,",
            SUPERSECRETMESSAGE_BACKEND="Memory",
            SUPERSECRETMESSAGE_LOG_LEVEL="debug",
            SUPERSECRETMESSAGE_FORWARDED_ALLOW_IPS="10.0.0.1,10.0.0.2",
            VAULT_ADDR="http://vault:8200",
            VAULT_TOKEN="s3cr3t",
            VAULT_TIMEOUT="10",
        )
        settings = Settings.from_env()

        assert settings.https_redirect_enabled is True
        assert settings.tls_enabled is True
        assert settings.vault_prefix == "secret/msgs/"
        assert settings.allowed_origins == ["https://a.example", "https://b.example"]
        assert settings.backend == "memory"
        assert settings.log_level == "DEBUG"
        assert settings.forwarded_allow_ips == "10.0.0.1,10.0.0.2"
        assert settings.vault_address == "http://vault:8200"
        assert settings.vault_token.get_secret_value() == "s3cr3t"
        assert settings.vault_timeout == 10

    def test_token_is_not_exposed_in_repr(self, env):
        env(SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS=":8080", VAULT_TOKEN="s3cr3t")
        assert "s3cr3t" not in repr(Settings.from_env())


class TestValidationRules:
    @pytest.mark.parametrize("values", [
        {},
        {"SUPERSECRETMESSAGE_HTTPS_BINDING_ADDRESS": ":443"},
        {"SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS": ":80",
         "SUPERSECRETMESSAGE_TLS_CERT_FILEPATH": "/c.pem"},
        {"SUPERSECRETMESSAGE_TLS_CERT_FILEPATH": "/c.pem",
         "SUPERSECRETMESSAGE_TLS_CERT_KEY_FILEPATH": "/k.pem"},
        {"SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS": "8080"},
        {"SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS": ":8080",
         "SUPERSECRETMESSAGE_BACKEND": "redis"},
        {"SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS": ":8080",
         "SUPERSECRETMESSAGE_LOG_LEVEL": "LOUD"},
        {"SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS": ":8080", "VAULT_TIMEOUT": "0"},
    ])
    def test_invalid_combinations(self, env, values):
        env(**values)
        with pytest.raises(pydantic.ValidationError):
            Settings.from_env()

    def test_https_only(self, env):
        env(
            SUPERSECRETMESSAGE_HTTPS_BINDING_ADDRESS=":443",
            SUPERSECRETMESSAGE_TLS_CERT_FILEPATH="/c.pem",
            SUPERSECRETMESSAGE_TLS_CERT_KEY_FILEPATH="/k.pem",
        )
        assert Settings.from_env().http_binding_address == ""


class TestSplitBindingAddress:
    @pytest.mark.parametrize("address,expected", [
        (":8080", ("0.0.0.0", 8080)),
        ("127.0.0.1:80", ("127.0.0.1", 80)),
        ("localhost:443", ("localhost", 443)),
        ("[::1]:8443", ("::1", 8443)),
    ])
    def test_valid(self, address, expected):
        assert split_binding_address(address) == expected

    @pytest.mark.parametrize("address", ["", "8080", ":0", ":70000", "host:", "host:port"])
    def test_invalid(self, address):
        with pytest.raises(ValueError):
            split_binding_address(address)
