"""Command line entry point for reqpipe."""
from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence

from reqpipe.cli.commands import config as config_command
from reqpipe.cli.commands import serve as serve_command
from reqpipe.cli.commands import version as version_command

_COMMANDS = (serve_command, config_command, version_command)


def log_level_override(args: argparse.Namespace) -> str | None:
    """Level requested by ``-v``/``-q``, or None to keep the configured one."""
    if getattr(args, "verbose", False):
        return "DEBUG"
    if getattr(args, "quiet", False):
        return "WARNING"
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reqpipe", description="Decorated HTTP client pipeline and front proxy"
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG, including the per-call sink."
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Log warnings only; silences per-call lines."
    )
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in _COMMANDS:
        command.register_parser(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    args.log_level = log_level_override(args)
    logging.basicConfig(
        level=args.log_level or "INFO",
        format="%(levelname)s %(name)s %(message)s",
    )
    return args.handler(args)


__all__ = ["build_parser", "log_level_override", "main"]
