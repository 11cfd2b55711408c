"""
Infrastructure service: keeps the service's own backend credential alive.
See docs/CleanArchitecture.md (Phase 5) for the architectural rationale.

A process-wide periodic task with its own start/stop lifecycle, owned by the
FastAPI lifespan rather than by any request. Renews at two thirds of the
remaining lease, backs off after a failure, and exits once the backend says
the credential cannot be renewed.
"""

import asyncio
import logging
from typing import Optional

from secretdrop.domain.errors import StorageError
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend

logger = logging.getLogger("secretdrop.renewer")


class TokenRenewer:
    RENEW_FRACTION: float = 2 / 3
    MIN_INTERVAL: float = 5.0
    RETRY_INTERVAL: float = 30.0

    def __init__(self, backend: ICredentialBackend) -> None:
        self._backend = backend
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the renewal loop on the running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="token-renewer")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        logger.info("renew cycle: begin")
        try:
            while True:
                delay = await self._renew_once()
                if delay is None:
                    return
                await asyncio.sleep(delay)
        finally:
            logger.info("renew cycle: end")

    async def _renew_once(self) -> Optional[float]:
        """Renew once and return the delay before the next attempt, or None to stop."""
        try:
            lease = await asyncio.to_thread(self._backend.renew_self)
        except StorageError as exc:
            logger.error("auth token: renewal failed (%s); retrying in %.0fs",
                         exc.__cause__ or exc, self.RETRY_INTERVAL)
            return self.RETRY_INTERVAL
        except Exception:
            # Keep the loop alive: a dead renewer lets the service token expire.
            logger.exception("auth token: unexpected renewal error; retrying in %.0fs",
                             self.RETRY_INTERVAL)
            return self.RETRY_INTERVAL

        if not lease.renewable:
            logger.info("auth token: not renewable; remaining duration: %ds",
                        lease.duration.total_seconds())
            return None

        logger.info("auth token: successfully renewed; remaining duration: %ds",
                    lease.duration.total_seconds())
        return max(lease.duration.total_seconds() * self.RENEW_FRACTION, self.MIN_INTERVAL)
