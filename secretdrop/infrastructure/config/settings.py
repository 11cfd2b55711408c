"""
Service configuration loaded from environment variables.
See docs/CleanArchitecture.md (Phase 6) for the architectural rationale.

Variables (all optional unless noted by the validation rules below):
    SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS    e.g. ":8080"
    SUPERSECRETMESSAGE_HTTPS_BINDING_ADDRESS   e.g. ":443"
    SUPERSECRETMESSAGE_HTTPS_REDIRECT_ENABLED  "true" to redirect HTTP to HTTPS
    SUPERSECRETMESSAGE_TLS_CERT_FILEPATH       certificate file
    SUPERSECRETMESSAGE_TLS_CERT_KEY_FILEPATH   certificate key file
    SUPERSECRETMESSAGE_VAULT_PREFIX            defaults to "cubbyhole/"
    SUPERSECRETMESSAGE_ALLOWED_ORIGINS         comma-separated CORS origins
    SUPERSECRETMESSAGE_BACKEND                 "vault" (default) or "memory"
    SUPERSECRETMESSAGE_LOG_LEVEL               defaults to "INFO"
    SUPERSECRETMESSAGE_FORWARDED_ALLOW_IPS     proxies trusted for X-Forwarded-For, defaults to "*"
    VAULT_ADDR / VAULT_TOKEN / VAULT_TIMEOUT   Vault location, service token, seconds

Security Note:
    Never log the Vault token. It is held as a SecretStr.
"""

import logging
import os
import re
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger("secretdrop.config")

ENV_PREFIX = "SUPERSECRETMESSAGE_"

_BINDING_PATTERN = re.compile(r"^(?P<host>[^:]*|\[[0-9A-Fa-f:.]+\]):(?P<port>\d{1,5})$")


def split_binding_address(address: str) -> tuple[str, int]:
    """Split "host:port" (or ":port") into a (host, port) pair.

    An empty host binds every interface.

    Raises:
        ValueError: if *address* is not of the form [host]:port with 1 <= port <= 65535.
    """
    match = _BINDING_PATTERN.match(address)
    if match is None:
        raise ValueError(f"invalid binding address {address!r}, expected [host]:port")
    port = int(match.group("port"))
    if not 1 <= port <= 65535:
        raise ValueError(f"invalid port in binding address {address!r}")
    host = match.group("host").strip("[]") or "0.0.0.0"
    return host, port


class Settings(BaseModel):
    """Validated service settings."""

    http_binding_address: str = ""
    https_binding_address: str = ""
    https_redirect_enabled: bool = False
    tls_cert_filepath: str = ""
    tls_cert_key_filepath: str = ""
    vault_prefix: str = Field(default="cubbyhole/")
    allowed_origins: list[str] = Field(default_factory=list)
    backend: str = Field(default="vault")
    log_level: str = Field(default="INFO")
    forwarded_allow_ips: str = Field(default="*")
    vault_address: Optional[str] = None
    vault_token: Optional[SecretStr] = None
    vault_timeout: int = Field(default=30, ge=1, le=600)

    @field_validator("http_binding_address", "https_binding_address")
    @classmethod
    def validate_binding(cls, v: str) -> str:
        if v:
            split_binding_address(v)
        return v

    @field_validator("vault_prefix")
    @classmethod
    def default_prefix(cls, v: str) -> str:
        return v or "cubbyhole/"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("vault", "memory"):
            raise ValueError(f"Unsupported backend: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return v

    @model_validator(mode="after")
    def validate_bindings(self) -> "Settings":
        """Cross-field rules between HTTP/HTTPS bindings and TLS files."""
        if bool(self.tls_cert_filepath) != bool(self.tls_cert_key_filepath):
            raise ValueError(
                "Both certificate filepath and certificate key filepath "
                "must be set when using TLS"
            )
        if self.tls_enabled and not self.https_binding_address:
            raise ValueError("HTTPS binding address must be set when using TLS")
        if self.https_binding_address and not self.tls_enabled:
            raise ValueError("HTTPS binding address is set but TLS is not configured")
        if not self.tls_enabled and not self.http_binding_address:
            raise ValueError("HTTP binding address must be set if TLS is disabled")
        return self

    @property
    def tls_enabled(self) -> bool:
        return bool(self.tls_cert_filepath)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from the process environment.

        Raises:
            pydantic.ValidationError: on any invalid or inconsistent value.
        """
        def env(name: str, default: str = "") -> str:
            return os.environ.get(ENV_PREFIX + name, default)

        origins = [o.strip() for o in env("ALLOWED_ORIGINS").split(",") if o.strip()]
        token = os.environ.get("VAULT_TOKEN")
        return cls(
            http_binding_address=env("HTTP_BINDING_ADDRESS"),
            https_binding_address=env("HTTPS_BINDING_ADDRESS"),
            https_redirect_enabled=env("HTTPS_REDIRECT_ENABLED").lower() == "true",
            tls_cert_filepath=env("TLS_CERT_FILEPATH"),
            tls_cert_key_filepath=env("TLS_CERT_KEY_FILEPATH"),
            vault_prefix=env("VAULT_PREFIX"),
            allowed_origins=origins,
            backend=env("BACKEND", "vault"),
            log_level=env("LOG_LEVEL", "INFO"),
            forwarded_allow_ips=env("FORWARDED_ALLOW_IPS", "*"),
            vault_address=os.environ.get("VAULT_ADDR") or None,
            vault_token=SecretStr(token) if token else None,
            vault_timeout=os.environ.get("VAULT_TIMEOUT", "30"),
        )

    def log_summary(self) -> None:
        logger.info("HTTP Binding Address: %s", self.http_binding_address)
        logger.info("HTTPS Binding Address: %s", self.https_binding_address)
        logger.info("HTTPS Redirect enabled: %s", self.https_redirect_enabled)
        logger.info("TLS Cert Filepath: %s", self.tls_cert_filepath)
        logger.info("TLS Cert Key Filepath: %s", self.tls_cert_key_filepath)
        logger.info("Vault prefix: %s", self.vault_prefix)
        logger.info("Backend: %s", self.backend)
        logger.info("Forwarded allow IPs: %s", self.forwarded_allow_ips)
