"""
Use-case: accept a message (and optionally a file) and hand back one-time tokens.
See docs/CleanArchitecture.md (Phase 4) for the architectural rationale.
Depends only on Domain ports and entities, no infrastructure imports.
"""

import base64
import logging
from typing import Optional

from secretdrop.application.validation.request_validator import (
    validate_file_upload,
    validate_message,
    validate_ttl,
)
from secretdrop.domain.entities.secret import FileUpload, SecretTokens
from secretdrop.domain.errors import SecretServiceError
from secretdrop.domain.ports.secret_store_port import ISecretStore

logger = logging.getLogger("secretdrop.handler")


class CreateSecretUseCase:
    def __init__(self, store: ISecretStore) -> None:
        self._store = store

    def execute(
        self,
        msg: str,
        ttl: str = "",
        upload: Optional[FileUpload] = None,
    ) -> SecretTokens:
        """Validate the request, store the file (if any) and then the message.

        The file and the message get independent tokens. If the message store
        fails after the file was stored, the whole request fails and the file
        token is abandoned to its TTL.

        Raises:
            ValidationError: on any invalid input, before anything is stored.
            StorageError:    if either store call fails.
        """
        validate_message(msg)
        validate_ttl(ttl)
        if upload is not None:
            validate_file_upload(upload)

        filetoken: Optional[str] = None
        filename: Optional[str] = None
        if upload is not None and upload.size > 0:
            encoded = base64.b64encode(upload.content).decode("ascii")
            filename = upload.filename
            filetoken = self._store.store(encoded, ttl, filename=filename)

        try:
            token = self._store.store(msg, ttl)
        except SecretServiceError:
            if filetoken is not None:
                logger.warning("Message store failed after file store; file token abandoned")
            raise

        return SecretTokens(token=token, filetoken=filetoken, filename=filename)
