"""
Use-case: redeem a one-time token for its secret.
See docs/CleanArchitecture.md (Phase 4) for the architectural rationale.
Depends only on Domain ports and entities, no infrastructure imports.
"""

from secretdrop.application.validation.request_validator import validate_token_format
from secretdrop.domain.ports.secret_store_port import ISecretStore


class RetrieveSecretUseCase:
    def __init__(self, store: ISecretStore) -> None:
        self._store = store

    def execute(self, token: str) -> str:
        """Return the secret behind *token*, destroying it.

        Attempted once: a retry after NotFoundError cannot succeed.

        Raises:
            ValidationError: malformed token (no backend call is made).
            NotFoundError:   token unknown, expired or already consumed.
            StorageError:    backend unreachable.
        """
        validate_token_format(token)
        return self._store.get(token)
