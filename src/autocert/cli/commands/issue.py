"""``issue`` and ``account`` subcommands."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from autocert.challenge import WebrootHttpChallengeStore
from autocert.cli.composition import build_components
from autocert.core.readiness import ReadinessGate
from autocert.server import ChallengeServer, create_app

if TYPE_CHECKING:
    import argparse

    from autocert.config import AutocertConfig
    from autocert.config.settings import AutocertSettings, OutputSettings
    from autocert.models import CertificateBundle

log = logging.getLogger(__name__)


def _write_private_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)


def write_outputs(bundle: CertificateBundle, output: OutputSettings) -> list[Path]:
    """Write the PKCS#12 (and optional PEM) files; returns the paths written."""
    written = [Path(output.pfx_path)]
    _write_private_file(written[0], bundle.export_pkcs12(output.pfx_password))
    if output.pem_path:
        written.append(Path(output.pem_path))
        _write_private_file(written[1], bundle.export_pem())
    return written


async def issue_certificate(
    settings: AutocertSettings,
    *,
    webroot: str | None = None,
) -> CertificateBundle:
    """Run one issuance, serving HTTP-01 responses unless *webroot* is given."""
    gate = ReadinessGate()
    http_store = WebrootHttpChallengeStore(webroot) if webroot else None
    components = build_components(settings, gate, http_store=http_store)

    server: ChallengeServer | None = None
    if webroot:
        log.info("Writing HTTP-01 responses below %s", webroot)
        gate.fire()
    else:
        http01 = settings.challenges.http01
        server = ChallengeServer(
            create_app(components.http_store),
            host=http01.bind,
            port=http01.port,
        )
        server.start(on_ready=gate.fire)

    try:
        return await components.factory.issue()
    finally:
        if server is not None:
            server.stop()


async def ensure_account(settings: AutocertSettings) -> tuple[int, str]:
    components = build_components(settings, ReadinessGate(fired=True))
    session = await components.factory.get_or_create_account()
    return session.account.id, session.account_uri


def run_issue(config: AutocertConfig, args: argparse.Namespace) -> None:
    """Handle ``autocert issue``."""
    settings = config.settings
    bundle = asyncio.run(issue_certificate(settings, webroot=args.webroot))
    for path in write_outputs(bundle, settings.output):
        log.info("Wrote %s", path)
    sys.stdout.write(
        f"Issued certificate for {', '.join(bundle.domains)} "
        f"(CN={bundle.common_name}, expires {bundle.certificate.not_valid_after_utc:%Y-%m-%d})\n",
    )


def run_account(config: AutocertConfig, args: argparse.Namespace) -> None:  # noqa: ARG001
    """Handle ``autocert account``."""
    account_id, account_uri = asyncio.run(ensure_account(config.settings))
    sys.stdout.write(f"Account {account_id}: {account_uri}\n")
