"""Config command for reqpipe.

Validates configuration files and prints the effective configuration.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Final

import yaml

from reqpipe.config import ConfigError, load_config

__all__ = ["register_parser", "run"]

EXIT_SUCCESS: Final = 0
EXIT_VALIDATION_FAILED: Final = 2


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the config command subparser.

    Args:
        subparsers: The argparse subparsers action to add to.
    """
    parser = subparsers.add_parser(
        "config",
        help="Inspect or validate reqpipe configuration.",
        description="Validate configuration files and show the effective configuration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  reqpipe config validate reqpipe.yaml
  reqpipe --config reqpipe.yaml config show
        """,
    )
    parser.set_defaults(handler=run)

    config_subparsers = parser.add_subparsers(dest="subcommand", required=True)

    validate_parser = config_subparsers.add_parser(
        "validate",
        help="Validate a configuration file.",
    )
    validate_parser.add_argument(
        "config_file",
        type=Path,
        nargs="?",
        help="Path to the configuration file (default: --config or the default locations).",
    )

    config_subparsers.add_parser(
        "show",
        help="Print the effective configuration as YAML.",
    )


def run(args: argparse.Namespace) -> int:
    path = getattr(args, "config_file", None) or getattr(args, "config", None)
    try:
        config = load_config(path)
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_FAILED

    if args.subcommand == "validate":
        print(f"Configuration OK{f': {path}' if path else ''}")
        return EXIT_SUCCESS

    print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")
    return EXIT_SUCCESS
