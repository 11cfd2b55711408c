"""
Request validation guarding entry into the secret lifecycle.
See docs/CleanArchitecture.md (Phase 2) for the architectural rationale.

Pure functions with no I/O: every check here runs before any backend round
trip, so malformed input never costs a call to the store.
"""

import re
from datetime import timedelta
from typing import Optional

from python_multipart.multipart import parse_options_header

from secretdrop.application.validation.duration import parse_duration
from secretdrop.domain.entities.secret import MAX_TTL, MIN_TTL, FileUpload
from secretdrop.domain.errors import ValidationError

MAX_MESSAGE_BYTES = 1 * 1024 * 1024
MAX_FILE_BYTES = 50 * 1024 * 1024

# Vault service/batch tokens: 24 alphanumerics, or the long form (91+ chars).
TOKEN_PATTERN = re.compile(r"hv[sb]\.(?:[A-Za-z0-9]{24}|[A-Za-z0-9_-]{91,})")

_UNSAFE_FILENAME_PARTS = ("..", "/", "\\")


def validate_message(msg: str) -> None:
    if not msg or not msg.strip():
        raise ValidationError("message is required")
    if len(msg.encode("utf-8")) > MAX_MESSAGE_BYTES:
        raise ValidationError("message too large")


def check_ttl_range(ttl: timedelta) -> None:
    """Raise ValidationError unless MIN_TTL <= *ttl* <= MAX_TTL."""
    if ttl < MIN_TTL or ttl > MAX_TTL:
        raise ValidationError("TTL out of range")


def validate_ttl(ttl: str) -> Optional[timedelta]:
    """Parse and range-check a TTL string.

    Returns:
        The parsed duration, or None for an empty string (store default applies).

    Raises:
        ValidationError: on a parse failure or a duration outside [1m, 168h].
    """
    if ttl == "":
        return None
    try:
        duration = parse_duration(ttl)
    except ValueError as exc:
        raise ValidationError("invalid TTL format") from exc
    check_ttl_range(duration)
    return duration


def validate_file_upload(upload: FileUpload) -> None:
    """Check a file part's framing, size and filename.

    The filename is checked both as declared in the Content-Disposition
    header and as stated by the transport, since either may be used later.
    """
    try:
        disposition, params = parse_options_header(upload.content_disposition or "")
    except (UnicodeError, ValueError, IndexError) as exc:
        raise ValidationError("invalid file upload") from exc
    if disposition.strip().lower() != b"form-data":
        raise ValidationError("invalid file upload")

    if upload.size > MAX_FILE_BYTES:
        raise ValidationError("file too large")

    declared = params.get(b"filename", b"").decode("latin-1")
    for name in (declared, upload.filename or ""):
        if any(part in name for part in _UNSAFE_FILENAME_PARTS):
            raise ValidationError("invalid filename")


def validate_token_format(token: str) -> None:
    # Never echo the token back: it may be a near-miss of a real one.
    if not TOKEN_PATTERN.fullmatch(token or ""):
        raise ValidationError("invalid token format")
