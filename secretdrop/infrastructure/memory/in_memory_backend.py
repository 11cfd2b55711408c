"""
Infrastructure adapter: process memory → ICredentialBackend.
See docs/CleanArchitecture.md (Phase 5) for the architectural rationale.

Single-process stand-in for Vault, used for local development
(SUPERSECRETMESSAGE_BACKEND=memory) and tests. Credentials follow the same
grammar as Vault service tokens. Use counting and destruction happen under
one lock, so this backend is the single source of truth for read races.
"""

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from secretdrop.domain.entities.secret import Lease, Secret
from secretdrop.domain.errors import NotFoundError, StorageError
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend

logger = logging.getLogger("secretdrop.memory")

_TOKEN_ALPHABET = string.ascii_letters + string.digits
_TOKEN_LENGTH = 24


@dataclass
class _Credential:
    uses_left: int
    expires_at: float
    secret: Optional[Secret] = None


class InMemoryCredentialBackend(ICredentialBackend):
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._credentials: dict[str, _Credential] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._credentials)

    def create_token(self, num_uses: int, ttl: timedelta, renewable: bool = False) -> str:
        if num_uses < 1:
            raise StorageError("failed to store secret")
        token = "hvs." + "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))
        with self._lock:
            self._purge_expired()
            self._credentials[token] = _Credential(
                uses_left=num_uses,
                expires_at=self._clock() + ttl.total_seconds(),
            )
        return token

    def write(self, token: str, secret: Secret) -> None:
        with self._lock:
            try:
                credential = self._consume(token)
            except NotFoundError as exc:
                raise StorageError("failed to store secret") from exc
            credential.secret = secret

    def read(self, token: str) -> str:
        with self._lock:
            credential = self._consume(token)
            if credential.secret is None:
                raise NotFoundError()
            return credential.secret.payload

    def renew_self(self) -> Lease:
        # There is no service credential to keep alive.
        return Lease(duration=timedelta(0), renewable=False)

    # ------------------------------------------------------------------
    # Private helpers (caller holds self._lock)
    # ------------------------------------------------------------------

    def _consume(self, token: str) -> _Credential:
        credential = self._credentials.get(token)
        if credential is None:
            raise NotFoundError()
        if credential.expires_at <= self._clock():
            del self._credentials[token]
            raise NotFoundError()
        credential.uses_left -= 1
        if credential.uses_left == 0:
            del self._credentials[token]
        return credential

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [t for t, c in self._credentials.items() if c.expires_at <= now]
        for token in expired:
            del self._credentials[token]
        if expired:
            logger.debug("Purged %d expired credential(s)", len(expired))
