"""Composition root: wires settings into concrete collaborators.

The account-store backend and every other default implementation are
chosen here, once, from configuration.  The services below never pick
an implementation themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from autocert.accounts import AccountManager, FileSystemAccountStore, TermsOfServiceChecker
from autocert.authority.acme_client import AcmeConnector
from autocert.challenge import InMemoryHttpChallengeStore, TlsAlpnChallengeResponder
from autocert.services import (
    AuthorizationValidator,
    CertificateAssembler,
    CertificateFactory,
    OrderResolver,
)

if TYPE_CHECKING:
    from autocert.accounts import AccountStore
    from autocert.authority.base import AuthorityConnector
    from autocert.challenge import HttpChallengeStore
    from autocert.config.settings import AutocertSettings
    from autocert.core.readiness import ReadinessGate

log = logging.getLogger(__name__)


def build_account_store(settings: AutocertSettings) -> AccountStore:
    """Instantiate the configured account-store backend."""
    backend = settings.account_store.backend
    if backend == "file":
        return FileSystemAccountStore(
            settings.account_store.path,
            settings.authority.directory_url,
        )
    msg = f"Unknown account store backend: {backend!r}"
    raise ValueError(msg)


def build_connector(settings: AutocertSettings) -> AuthorityConnector:
    authority = settings.authority
    return AcmeConnector(
        authority.directory_url,
        user_agent=authority.user_agent,
        verify_ssl=authority.verify_ssl,
        timeout_seconds=authority.timeout_seconds,
        finalize_timeout=authority.finalize_timeout_seconds,
    )


@dataclass(frozen=True)
class Components:
    """Everything one issuance run needs."""

    factory: CertificateFactory
    http_store: HttpChallengeStore
    tls_responder: TlsAlpnChallengeResponder
    gate: ReadinessGate


def build_components(
    settings: AutocertSettings,
    gate: ReadinessGate,
    *,
    http_store: HttpChallengeStore | None = None,
    account_store: AccountStore | None = None,
    connector: AuthorityConnector | None = None,
) -> Components:
    """Wire the certificate factory from settings.

    Any collaborator passed explicitly replaces the configured default.
    """
    if http_store is None:
        http_store = InMemoryHttpChallengeStore()
    if account_store is None:
        account_store = build_account_store(settings)
    if connector is None:
        connector = build_connector(settings)

    tls_responder = TlsAlpnChallengeResponder(
        enabled=settings.challenges.tls_alpn01.enabled,
    )
    account_manager = AccountManager(
        account_store,
        connector,
        TermsOfServiceChecker(accept_terms_of_service=settings.accept_terms_of_service),
        email=settings.email,
    )
    validator = AuthorizationValidator(
        http_store,
        tls_responder,
        gate,
        poll_attempts=settings.challenges.poll_attempts,
        poll_interval=settings.challenges.poll_interval_seconds,
    )
    factory = CertificateFactory(
        account_manager,
        OrderResolver(),
        validator,
        CertificateAssembler(settings.key_algorithm),
        settings.domains,
    )
    return Components(
        factory=factory,
        http_store=http_store,
        tls_responder=tls_responder,
        gate=gate,
    )
