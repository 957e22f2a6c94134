"""Serve command: run the front proxy over the configured pipeline."""
from __future__ import annotations

import argparse
import contextlib
import dataclasses
import logging
import sys
from collections.abc import AsyncIterator

import uvicorn
from starlette.applications import Starlette

from reqpipe.client.transports.httpx import HttpxTransport
from reqpipe.config import ConfigError, PipelineConfig, load_config
from reqpipe.pipeline import build_pipeline
from reqpipe.server.app import ProxyApp

__all__ = ["apply_overrides", "build_app", "register_parser", "run"]

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser(
        "serve",
        help="Run the front proxy.",
        description="Accept inbound HTTP requests and forward them through the pipeline.",
    )
    parser.add_argument("--host", type=str, default=None, help="Override server.host.")
    parser.add_argument("--port", type=int, default=None, help="Override server.port.")
    parser.set_defaults(handler=run)


def apply_overrides(config: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    """Folds command line flags into the loaded config."""
    server = config.server
    if args.host or args.port is not None:
        server = dataclasses.replace(
            server,
            host=args.host or server.host,
            port=server.port if args.port is None else args.port,
        )
    log_level = getattr(args, "log_level", None)
    logging_config = config.logging
    if log_level:
        logging_config = dataclasses.replace(logging_config, level=log_level)
    return dataclasses.replace(config, server=server, logging=logging_config)


def build_app(config: PipelineConfig) -> Starlette:
    """Builds the proxy application; the transport is closed on shutdown."""
    transport = HttpxTransport(timeout=config.transport.timeout_s)
    client = build_pipeline(config, transport)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await transport.aclose()

    return ProxyApp(client).build(lifespan=lifespan)


def run(args: argparse.Namespace) -> int:
    try:
        config = apply_overrides(load_config(getattr(args, "config", None)), args)
    except (ConfigError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    logger.info(f"Serving on {config.server.host}:{config.server.port}")
    uvicorn.run(build_app(config), host=config.server.host, port=config.server.port)
    return 0
