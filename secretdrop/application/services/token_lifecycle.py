"""
Application service: mints the one-time credential behind every secret.
See docs/CleanArchitecture.md (Phase 3) for the architectural rationale.

Business decisions owned here:
  - WRITES / READS: the use budget of a credential. One use is spent storing
    the secret, exactly one is left for the recipient.
  - TTL is a hard, non-renewable ceiling; activity never extends it.
"""

from datetime import timedelta

from secretdrop.application.validation.request_validator import check_ttl_range
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend


class TokenLifecycleManager:
    WRITES: int = 1
    READS: int = 1

    def __init__(self, backend: ICredentialBackend) -> None:
        self._backend = backend

    @property
    def use_budget(self) -> int:
        return self.WRITES + self.READS

    def mint(self, ttl: timedelta) -> str:
        """Mint a credential scoped to one write and one read within *ttl*.

        Raises:
            ValidationError: if *ttl* is outside [1m, 168h]. No backend call is made.
            StorageError:    propagated from the backend.
        """
        check_ttl_range(ttl)
        return self._backend.create_token(
            num_uses=self.use_budget,
            ttl=ttl,
            renewable=False,
        )
