"""Version command: reqpipe and the HTTP stack it runs on."""
from __future__ import annotations

import argparse
from importlib import metadata

__all__ = ["register_parser", "run"]

_STACK = ("httpx", "starlette", "uvicorn")


def _version_of(distribution: str) -> str:
    try:
        return metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return "unknown"


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("version", help="Show reqpipe and HTTP stack versions.")
    parser.set_defaults(handler=run)


def run(_: argparse.Namespace) -> int:
    stack = ", ".join(f"{name} {_version_of(name)}" for name in _STACK)
    print(f"reqpipe {_version_of('reqpipe')} ({stack})")
    return 0
