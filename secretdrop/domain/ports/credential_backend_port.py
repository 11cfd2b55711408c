"""
Port (interface) for backends offering limited-use, time-bounded credentials.
See docs/CleanArchitecture.md (Phase 1) for the architectural rationale.
Infrastructure adapters (e.g. VaultCredentialBackend, InMemoryCredentialBackend)
must implement this interface.

Contract: every write or read authenticated by a credential consumes one of
its uses atomically. A credential with no uses left, or past its TTL, is gone
together with everything written under it.
"""

from abc import ABC, abstractmethod
from datetime import timedelta

from secretdrop.domain.entities.secret import Lease, Secret


class ICredentialBackend(ABC):
    @abstractmethod
    def create_token(self, num_uses: int, ttl: timedelta, renewable: bool = False) -> str:
        """Mint a credential good for *num_uses* operations within *ttl*.

        Raises:
            StorageError: on any backend failure.
        """
        ...

    @abstractmethod
    def write(self, token: str, secret: Secret) -> None:
        """Store *secret* under *token*, consuming one use.

        Raises:
            StorageError: on any backend failure.
        """
        ...

    @abstractmethod
    def read(self, token: str) -> str:
        """Return the payload stored under *token*, consuming one use.

        Raises:
            NotFoundError: unknown, expired or exhausted credential.
            StorageError:  backend unreachable.
        """
        ...

    @abstractmethod
    def renew_self(self) -> Lease:
        """Renew the service's own credential and report its new lease."""
        ...
