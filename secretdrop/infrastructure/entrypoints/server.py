"""
CLI entry point: runs the HTTP and/or HTTPS listeners.
See docs/CleanArchitecture.md (Phase 6) for the architectural rationale.

Reads configuration from the environment (and a .env file if present),
wires the app through build_app() and serves it with uvicorn. With both
bindings set, the HTTP listener typically only redirects to HTTPS
(SUPERSECRETMESSAGE_HTTPS_REDIRECT_ENABLED=true).

    secretdrop --version
    SUPERSECRETMESSAGE_HTTP_BINDING_ADDRESS=:8080 secretdrop
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from pydantic import ValidationError

from secretdrop.infrastructure.config.settings import Settings, split_binding_address
from secretdrop.infrastructure.entrypoints.fastapi_app import build_app
from secretdrop.version import __version__

logger = logging.getLogger("secretdrop.server")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_servers(app: FastAPI, settings: Settings) -> list[uvicorn.Server]:
    """One uvicorn server per configured binding. Only the first runs the app lifespan."""
    configs = []
    if settings.https_binding_address:
        host, port = split_binding_address(settings.https_binding_address)
        configs.append(dict(
            host=host,
            port=port,
            ssl_certfile=settings.tls_cert_filepath,
            ssl_keyfile=settings.tls_cert_key_filepath,
        ))
    if settings.http_binding_address:
        host, port = split_binding_address(settings.http_binding_address)
        configs.append(dict(host=host, port=port))

    servers = []
    for index, options in enumerate(configs):
        config = uvicorn.Config(
            app,
            access_log=False,
            log_config=None,
            lifespan="on" if index == 0 else "off",
            timeout_graceful_shutdown=10,
            # Rate limiting keys on the client address uvicorn resolves here.
            proxy_headers=True,
            forwarded_allow_ips=settings.forwarded_allow_ips,
            **options,
        )
        servers.append(uvicorn.Server(config))
    return servers


async def serve(servers: list[uvicorn.Server]) -> None:
    await asyncio.gather(*(server.serve() for server in servers))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="secretdrop",
        description="Self-destructing, read-once secret message service.",
    )
    parser.add_argument("--version", action="store_true", help="Print version")
    args = parser.parse_args(argv)
    if args.version:
        print(__version__)
        return 0

    load_dotenv()
    try:
        settings = Settings.from_env()
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)
    settings.log_summary()

    app = build_app(settings)
    asyncio.run(serve(build_servers(app, settings)))
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
