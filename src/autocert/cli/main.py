"""autocert command-line entry point.

Usage::

    autocert -c config.yaml                  # same as "issue"
    autocert -c config.yaml issue
    autocert -c config.yaml issue --webroot /var/www/html
    autocert -c config.yaml account
    autocert -c config.yaml --validate-only
    python -m autocert -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from autocert import __version__  # noqa: PLC0415

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autocert",
        description="autocert: obtain TLS certificates from an ACME certificate authority",
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

    # Subcommands
    subparsers = parser.add_subparsers(dest="command")

    # issue
    issue_parser = subparsers.add_parser("issue", help="Obtain a certificate (default)")
    issue_parser.add_argument(
        "--webroot",
        metavar="DIR",
        default=None,
        help=(
            "Write HTTP-01 responses below DIR instead of serving them "
            "from a built-in HTTP server."
        ),
    )

    # account
    subparsers.add_parser("account", help="Register or validate the authority account")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    sys.stderr.write(f"autocert: error: {message}\n")


def _print_settings_summary(config) -> None:  # noqa: ANN001
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"Configuration: {config.source}",
        f"  Domains:        {', '.join(s.domains)}",
        f"  Contact:        {s.email}",
        f"  Authority:      {s.authority.directory_url}",
        f"  Key algorithm:  {s.key_algorithm}",
        f"  Account store:  {s.account_store.backend} ({s.account_store.path})",
        f"  HTTP-01:        {s.challenges.http01.bind}:{s.challenges.http01.port}",
        f"  TLS-ALPN-01:    {'enabled' if s.challenges.tls_alpn01.enabled else 'disabled'}",
        f"  Output:         {s.output.pfx_path}",
    ]
    sys.stdout.write("\n".join(lines) + "\n")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs the command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
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
    from autocert.config import AutocertConfig, ConfigValidationError  # noqa: PLC0415

    try:
        config = AutocertConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from autocert.logging import configure_logging  # noqa: PLC0415

    configure_logging(config.settings.logging)
    if args.debug:
        logging.getLogger("autocert").setLevel(logging.DEBUG)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    # -- dispatch subcommand ---
    from autocert.accounts import AccountStoreError, TermsOfServiceNotAcceptedError  # noqa: PLC0415
    from autocert.authority import AuthorityError  # noqa: PLC0415
    from autocert.cli.commands.issue import run_account, run_issue  # noqa: PLC0415
    from autocert.services import IssuanceError  # noqa: PLC0415

    try:
        if args.command == "account":
            run_account(config, args)
        else:
            if args.command is None:
                args.webroot = None
            run_issue(config, args)
    except (
        AccountStoreError,
        AuthorityError,
        IssuanceError,
        TermsOfServiceNotAcceptedError,
    ) as exc:
        if args.debug:
            raise
        _print_error(str(exc))
        sys.exit(1)
    except OSError as exc:
        if args.debug:
            raise
        _print_error(f"I/O failure: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        _print_error("interrupted")
        sys.exit(1)
