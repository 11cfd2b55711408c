"""
Domain error taxonomy.
See docs/CleanArchitecture.md (Phase 1) for the architectural rationale.

Every failure the core reports is one of three kinds. Entry points map the
kind to a transport status through a single table instead of inspecting
exception types.
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    STORAGE = "storage"


class SecretServiceError(Exception):
    """Base class for every error raised by the secret lifecycle core.

    ``reason`` is safe to return to a client; the chained ``__cause__`` may
    carry backend detail and is only ever logged.
    """

    kind: ErrorKind
    default_reason: str = "secret service error"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ValidationError(SecretServiceError):
    """Client-caused: bad message, TTL, upload or token shape."""

    kind = ErrorKind.VALIDATION
    default_reason = "invalid request"


class NotFoundError(SecretServiceError):
    """Token unknown, expired or already consumed. Deliberately indistinguishable."""

    kind = ErrorKind.NOT_FOUND
    default_reason = "secret not found or already consumed"


class StorageError(SecretServiceError):
    """Backend unreachable, or a mint/write/read round trip failed."""

    kind = ErrorKind.STORAGE
    default_reason = "secret backend unavailable"
