"""
Application service: the backend-agnostic one-time secret store.
See docs/CleanArchitecture.md (Phase 3) for the architectural rationale.

Implements ISecretStore on top of any ICredentialBackend. Exactly-once
consumption is the backend's atomic use counter; this class adds no locking
and never retries, since a retried mint could leave two live tokens for one
submission.
"""

import logging
from typing import Optional

from secretdrop.application.services.token_lifecycle import TokenLifecycleManager
from secretdrop.application.validation.request_validator import validate_ttl
from secretdrop.domain.entities.secret import DEFAULT_TTL, Secret
from secretdrop.domain.errors import SecretServiceError, StorageError
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend
from secretdrop.domain.ports.secret_store_port import ISecretStore

logger = logging.getLogger("secretdrop.store")


class OneTimeSecretStore(ISecretStore):
    def __init__(
        self,
        backend: ICredentialBackend,
        lifecycle: Optional[TokenLifecycleManager] = None,
    ) -> None:
        self._backend = backend
        self._lifecycle = lifecycle or TokenLifecycleManager(backend)

    def store(self, secret: str, ttl: str = "", filename: Optional[str] = None) -> str:
        duration = validate_ttl(ttl) or DEFAULT_TTL
        token = self._lifecycle.mint(duration)

        record = Secret(
            payload=secret, ttl=duration, uses=self._lifecycle.use_budget, filename=filename,
        )
        try:
            self._backend.write(token, record)
        except SecretServiceError as exc:
            # The minted credential is left to expire on its own TTL.
            logger.error("Secret write failed after mint; credential abandoned: %s", exc)
            raise StorageError("failed to store secret") from exc

        logger.debug("Secret stored: ttl=%ss", int(duration.total_seconds()))
        return token

    def get(self, token: str) -> str:
        return self._backend.read(token)
