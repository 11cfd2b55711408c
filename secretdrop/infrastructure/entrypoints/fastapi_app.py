"""
FastAPI entry point: HTTP surface of the one-time secret service.
See docs/CleanArchitecture.md (Phase 6) for the architectural rationale.

build_app() is the Composition Root: it picks the credential backend from
Settings, wires it into OneTimeSecretStore and the use cases, and hands the
service-token renewer to the app lifespan. create_app() takes already-built
collaborators so tests can inject their own store.

Run locally:
    SUPERSECRETMESSAGE_BACKEND=memory SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS=:8080 \\
    uvicorn secretdrop.infrastructure.entrypoints.fastapi_app:build_app --factory --port 8080
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from secretdrop.application.services.one_time_secret_store import OneTimeSecretStore
from secretdrop.application.use_cases.create_secret import CreateSecretUseCase
from secretdrop.application.use_cases.retrieve_secret import RetrieveSecretUseCase
from secretdrop.application.validation.request_validator import MAX_MESSAGE_BYTES
from secretdrop.domain.entities.secret import FileUpload
from secretdrop.domain.errors import ErrorKind, SecretServiceError, ValidationError
from secretdrop.domain.ports.credential_backend_port import ICredentialBackend
from secretdrop.domain.ports.secret_store_port import ISecretStore
from secretdrop.infrastructure.config.settings import Settings
from secretdrop.infrastructure.entrypoints.middleware import install_middlewares
from secretdrop.infrastructure.memory.in_memory_backend import InMemoryCredentialBackend
from secretdrop.infrastructure.secrets.token_renewer import TokenRenewer
from secretdrop.infrastructure.secrets.vault_backend import VaultCredentialBackend

logger = logging.getLogger("secretdrop.http")

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STORAGE: 500,
}

_ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Per text field, as seen by the form parser. Percent-encoding can triple a
# url-encoded message on the wire; validate_message enforces the real limit.
MAX_FORM_PART_BYTES = 3 * MAX_MESSAGE_BYTES + 64 * 1024


class TokenResponse(BaseModel):
    token: str
    filetoken: Optional[str] = None
    filename: Optional[str] = None


class MsgResponse(BaseModel):
    msg: str


def _text_field(form: FormData, name: str) -> str:
    value = form.get(name, "")
    if not isinstance(value, str):
        raise ValidationError("invalid request")
    return value


async def _file_field(form: FormData, name: str) -> Optional[FileUpload]:
    value = form.get(name)
    if value is None:
        return None
    # A part without a plain filename parameter (missing, or RFC 2231
    # ``filename*=``) is parsed as a text field, not a file.
    if not isinstance(value, UploadFile):
        raise ValidationError("invalid file upload")
    return FileUpload(
        filename=value.filename or "",
        content_disposition=value.headers.get("content-disposition", ""),
        content=await value.read(),
    )


def create_app(
    store: ISecretStore,
    settings: Settings,
    renewer: Optional[TokenRenewer] = None,
) -> FastAPI:
    create_use_case = CreateSecretUseCase(store)
    retrieve_use_case = RetrieveSecretUseCase(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if renewer is not None:
            renewer.start()
        try:
            yield
        finally:
            if renewer is not None:
                await renewer.stop()

    app = FastAPI(title="secretdrop", lifespan=lifespan, docs_url=None, redoc_url=None)
    install_middlewares(app, settings)

    @app.exception_handler(SecretServiceError)
    async def secret_error_handler(request: Request, exc: SecretServiceError) -> JSONResponse:
        if exc.kind is ErrorKind.STORAGE:
            # Only the cause's type: hvac messages embed request URLs, and
            # cubbyhole URLs embed tokens.
            logger.error(
                "Backend failure on %s %s: %s (%s)",
                request.method, request.url.path, exc.reason, type(exc.__cause__).__name__,
            )
        return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content={"detail": exc.reason})

    # Backend calls block: the create handler hands them to the thread pool,
    # and the plain ``def`` retrieve handler already runs there.

    @app.post("/secret", response_model=TokenResponse, response_model_exclude_none=True)
    async def create_secret(request: Request) -> TokenResponse:
        """Store a message (and optional file) and return their one-time tokens."""
        try:
            form = await request.form(max_part_size=MAX_FORM_PART_BYTES)
        except StarletteHTTPException as exc:
            raise ValidationError("invalid request") from exc
        try:
            msg = _text_field(form, "msg")
            ttl = _text_field(form, "ttl")
            upload = await _file_field(form, "file")
            tokens = await run_in_threadpool(create_use_case.execute, msg, ttl, upload)
        finally:
            await form.close()
        return TokenResponse(token=tokens.token, filetoken=tokens.filetoken, filename=tokens.filename)

    @app.get("/secret", response_model=MsgResponse)
    def get_secret(token: str = "") -> MsgResponse:
        """Redeem a one-time token. The secret is destroyed by this call."""
        return MsgResponse(msg=retrieve_use_case.execute(token))

    @app.api_route("/health", methods=_ANY_METHOD)
    async def health():
        return PlainTextResponse("OK")

    @app.get("/")
    async def root():
        return RedirectResponse("/msg", status_code=308)

    return app


def build_backend(settings: Settings) -> ICredentialBackend:
    if settings.backend == "memory":
        logger.warning("Using the in-memory backend: secrets do not survive a restart")
        return InMemoryCredentialBackend()
    return VaultCredentialBackend(
        address=settings.vault_address,
        token=settings.vault_token.get_secret_value() if settings.vault_token else None,
        prefix=settings.vault_prefix,
        timeout=settings.vault_timeout,
    )


def build_app(settings: Optional[Settings] = None) -> FastAPI:
    """Composition Root: wire all dependencies once at startup."""
    if settings is None:
        load_dotenv()
        settings = Settings.from_env()
    backend = build_backend(settings)
    renewer = TokenRenewer(backend) if settings.backend == "vault" else None
    return create_app(OneTimeSecretStore(backend), settings, renewer)
