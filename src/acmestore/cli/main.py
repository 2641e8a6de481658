"""acmestore command-line entry point.

Usage::

    acmestore -c /etc/acmestore/config.yaml --validate-only
    acmestore -c config.yaml inspect
    acmestore -c config.yaml inspect --show-keys
    acmestore -c config.yaml challenges
    python -m acmestore -c config.yaml inspect
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from acmestore import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acmestore",
        description="acmestore: inspect ACME state persisted in a remote object",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Print the persisted account and certificates",
    )
    inspect_parser.add_argument(
        "--show-keys",
        action="store_true",
        default=False,
        help="Do not redact private key material.",
    )

    subparsers.add_parser("challenges", help="List pending HTTP-01 and TLS-ALPN-01 challenges")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"acmestore: error: {message}\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, dispatches."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    from acmestore.config import ConfigValidationError, StoreConfig

    try:
        config = StoreConfig(config_file=config_path)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    from acmestore.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    from acmestore.core.errors import StoreError

    try:
        if args.command == "inspect":
            from acmestore.cli.commands.inspect import run_inspect

            run_inspect(config, args)
        elif args.command == "challenges":
            from acmestore.cli.commands.inspect import run_challenges

            run_challenges(config, args)
        else:
            parser.print_help()
            sys.exit(2)
    except StoreError as exc:
        if args.debug:
            raise
        _print_error(exc.detail)
        sys.exit(1)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    s = config.settings
    print(f"Configuration OK: {config.config_file}")
    print(f"  backend:   {s.backend.type}")
    if s.backend.type == "kubernetes":
        mode = "in-cluster" if s.backend.kubernetes.in_cluster else s.backend.kubernetes.api_url
        print(f"  api:       {mode}")
    print(f"  object:    {s.store.namespace}/{s.store.secret_name} (key '{s.store.data_key}')")
    print(f"  logging:   {s.logging.level} ({s.logging.format})")
