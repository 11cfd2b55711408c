"""
Port (interface) for one-time secret stores.
See docs/CleanArchitecture.md (Phase 1) for the architectural rationale.
Application services (e.g. OneTimeSecretStore) must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional


class ISecretStore(ABC):
    @abstractmethod
    def store(self, secret: str, ttl: str = "", filename: Optional[str] = None) -> str:
        """Persist *secret* and return the one-time token that unlocks it.

        An empty *ttl* selects the default lifetime (48h). *filename* is kept
        on the record when the secret is an uploaded file.

        Raises:
            ValidationError: if *ttl* is malformed or outside [1m, 168h].
            StorageError:    if minting or writing fails. No token is returned.
        """
        ...

    @abstractmethod
    def get(self, token: str) -> str:
        """Read the secret and destroy it in the same atomic step.

        Raises:
            NotFoundError: token unknown, expired or already consumed.
            StorageError:  backend unreachable.
        """
        ...
