"""
Infrastructure adapter: HashiCorp Vault → ICredentialBackend.
See docs/CleanArchitecture.md (Phase 5) for the architectural rationale.

Each secret lives in the cubbyhole of its own limited-use token, so Vault's
per-token use counter is what makes reads exactly-once: the read that spends
the last use also revokes the token, and the cubbyhole goes with it.

All hvac-specific details (client construction, exception classes) are
confined here; the rest of the codebase depends only on ICredentialBackend.
"""

import logging
from datetime import timedelta
from typing import Optional

import hvac
import hvac.exceptions
import requests

from secretdrop.domain.entities.secret import Lease, Secret
from secretdrop.domain.errors import NotFoundError, StorageError
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend

logger = logging.getLogger("secretdrop.vault")

# A read rejected for any of these reasons means the token is not (or no
# longer) valid, which must look exactly like "never existed" to the caller.
_ABSENT_ERRORS = (
    hvac.exceptions.Forbidden,
    hvac.exceptions.Unauthorized,
    hvac.exceptions.InvalidPath,
    hvac.exceptions.InvalidRequest,
)
_BACKEND_ERRORS = (hvac.exceptions.VaultError, requests.exceptions.RequestException)


def _vault_duration(ttl: timedelta) -> str:
    return f"{int(ttl.total_seconds())}s"


class VaultCredentialBackend(ICredentialBackend):
    """Stores secrets in Vault cubbyholes behind one-time tokens."""

    def __init__(
        self,
        address: Optional[str] = None,
        token: Optional[str] = None,
        prefix: str = "cubbyhole/",
        timeout: int = 30,
    ) -> None:
        """
        Args:
            address: Vault URL. None falls back to VAULT_ADDR (hvac default).
            token:   Service token allowed to create child tokens. None falls
                     back to VAULT_TOKEN.
            prefix:  Path prefix secrets are written under.
            timeout: Seconds allowed per Vault round trip.
        """
        self._address = address
        self._prefix = prefix
        self._timeout = timeout
        self._client = self._new_client(token)

    # ------------------------------------------------------------------
    # ICredentialBackend interface
    # ------------------------------------------------------------------

    def create_token(self, num_uses: int, ttl: timedelta, renewable: bool = False) -> str:
        try:
            response = self._client.auth.token.create(
                meta={"name": "secretdrop"},
                num_uses=num_uses,
                ttl=_vault_duration(ttl),
                explicit_max_ttl=_vault_duration(ttl),
                renewable=renewable,
            )
            return response["auth"]["client_token"]
        except _BACKEND_ERRORS as exc:
            logger.error("Vault token creation failed: %s", type(exc).__name__)
            raise StorageError("failed to store secret") from exc
        except (KeyError, TypeError) as exc:
            raise StorageError("failed to store secret") from exc

    def write(self, token: str, secret: Secret) -> None:
        client = self._new_client(token)
        try:
            client.write_data(self._path(token), data={"msg": secret.payload})
        except _BACKEND_ERRORS as exc:
            logger.error("Vault write failed: %s", type(exc).__name__)
            raise StorageError("failed to store secret") from exc

    def read(self, token: str) -> str:
        client = self._new_client(token)
        try:
            response = client.read(self._path(token))
        except _ABSENT_ERRORS as exc:
            raise NotFoundError() from exc
        except _BACKEND_ERRORS as exc:
            logger.error("Vault read failed: %s", type(exc).__name__)
            raise StorageError() from exc

        data = (response or {}).get("data") or {}
        if "msg" not in data:
            raise NotFoundError()
        return data["msg"]

    def renew_self(self) -> Lease:
        """Renew the service token if Vault allows it.

        Root and other non-renewable tokens report ``renewable=False`` with
        their remaining TTL instead of attempting a renewal that would fail.
        """
        try:
            info = self._client.auth.token.lookup_self()["data"]
            if not info.get("renewable"):
                return Lease(duration=timedelta(seconds=info.get("ttl") or 0), renewable=False)
            auth = self._client.auth.token.renew_self()["auth"]
            return Lease(
                duration=timedelta(seconds=auth.get("lease_duration") or 0),
                renewable=bool(auth.get("renewable")),
            )
        except _BACKEND_ERRORS as exc:
            raise StorageError("service token renewal failed") from exc
        except (KeyError, TypeError, AttributeError) as exc:
            logger.error("Vault renewal returned an unexpected response: %s", type(exc).__name__)
            raise StorageError("service token renewal failed") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _new_client(self, token: Optional[str]) -> hvac.Client:
        return hvac.Client(url=self._address, token=token, timeout=self._timeout)

    def _path(self, token: str) -> str:
        return f"{self._prefix}{token}"
