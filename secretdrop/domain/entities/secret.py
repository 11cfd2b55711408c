"""
Domain entities for one-time secrets.
See docs/CleanArchitecture.md (Phase 1) for the architectural rationale.
Zero external dependencies: pure Python dataclasses only.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_TTL = timedelta(hours=48)
MIN_TTL = timedelta(minutes=1)
MAX_TTL = timedelta(hours=168)


@dataclass(frozen=True)
class Secret:
    payload: str
    ttl: timedelta
    uses: int
    filename: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def expires_at(self) -> datetime:
        return self.created_at + self.ttl


@dataclass(frozen=True)
class FileUpload:
    """An uploaded file part as received from the transport.

    filename:            name stated by the transport layer for the part.
    content_disposition: raw Content-Disposition header of the part.
    content:             the file bytes.
    """

    filename: str
    content_disposition: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class SecretTokens:
    token: str
    filetoken: Optional[str] = None
    filename: Optional[str] = None


@dataclass(frozen=True)
class Lease:
    """Remaining lifetime of the service's own backend credential."""

    duration: timedelta
    renewable: bool
