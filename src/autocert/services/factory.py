"""Certificate factory: the end-to-end issuance orchestrator.

Sequence::

    AccountManager -> OrderResolver -> AuthorizationValidator (one task
    per authorization, concurrently) -> all-succeed join -> CertificateAssembler

The factory keeps no per-issuance state; the account session is passed
explicitly, so a single instance can serve concurrent issuances.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from autocert.core.results import AuthorizationFailure, AuthorizationSuccess

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocert.accounts.manager import AccountManager, AccountSession
    from autocert.core.results import AuthorizationOutcome
    from autocert.models import CertificateBundle
    from autocert.services.authorization import AuthorizationValidator
    from autocert.services.certificate import CertificateAssembler
    from autocert.services.order import OrderResolver

log = logging.getLogger(__name__)


class IssuanceError(Exception):
    """One or more domains could not be validated.

    Parameters
    ----------
    failures:
        Every failed domain, in authorization order.

    """

    def __init__(self, failures: Sequence[AuthorizationFailure]) -> None:
        self.failures = tuple(failures)
        self.detail = "Domain ownership validation failed: " + "; ".join(
            str(f) for f in self.failures
        )
        super().__init__(self.detail)

    @property
    def domains(self) -> list[str]:
        return [f.domain for f in self.failures]


class CertificateFactory:
    """Orchestrates one certificate issuance for the configured domains.

    Parameters
    ----------
    account_manager:
        Produces the account session.
    order_resolver:
        Finds or creates the order.
    validator:
        Validates a single authorization.
    assembler:
        Finalizes the order into a bundle.
    domains:
        Configured domain names; the first is the certificate's common name.

    """

    def __init__(  # noqa: PLR0913
        self,
        account_manager: AccountManager,
        order_resolver: OrderResolver,
        validator: AuthorizationValidator,
        assembler: CertificateAssembler,
        domains: Sequence[str],
    ) -> None:
        if not domains:
            msg = "At least one domain must be configured"
            raise ValueError(msg)
        self._account_manager = account_manager
        self._order_resolver = order_resolver
        self._validator = validator
        self._assembler = assembler
        self._domains = tuple(domains)

    @property
    def domains(self) -> tuple[str, ...]:
        return self._domains

    async def get_or_create_account(self) -> AccountSession:
        return await self._account_manager.get_or_create_account()

    async def issue(self) -> CertificateBundle:
        """Obtain an account session and create a certificate with it."""
        session = await self.get_or_create_account()
        return await self.create_certificate(session)

    async def create_certificate(self, session: AccountSession) -> CertificateBundle:
        """Resolve an order, validate every authorization and finalize.

        Raises
        ------
        IssuanceError
            If any authorization ends in a failure.  Every domain is
            validated to completion before this is raised.

        """
        order = await self._order_resolver.resolve(session, self._domains)

        outcomes = await self._validate_all(session, order.authorizations)

        failures = [o for o in outcomes if isinstance(o, AuthorizationFailure)]
        if failures:
            for failure in failures:
                log.error("Validation failed for %s", failure)
            raise IssuanceError(failures)

        log.info("All %d authorizations are valid", len(outcomes))
        return await self._assembler.finalize(session, order, self._domains)

    async def _validate_all(
        self,
        session: AccountSession,
        authorization_uris: Sequence[str],
    ) -> list[AuthorizationOutcome]:
        results = await asyncio.gather(
            *(self._validator.validate(session, uri) for uri in authorization_uris),
            return_exceptions=True,
        )

        outcomes: list[AuthorizationOutcome] = []
        error: BaseException | None = None
        for result in results:
            if isinstance(result, (AuthorizationSuccess, AuthorizationFailure)):
                outcomes.append(result)
            elif isinstance(result, asyncio.CancelledError):
                raise result
            elif error is None:
                error = result
        if error is not None:
            raise error
        return outcomes
