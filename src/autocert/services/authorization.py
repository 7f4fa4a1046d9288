"""Authorization validation: prove control of one domain (RFC 8555 §7.5).

One :meth:`AuthorizationValidator.validate` call drives a single
authorization to a terminal state:

1. Fetch the authorization.  Already valid: done, nothing is prepared.
2. Pending: publish the challenge responses (TLS-ALPN-01 when enabled,
   HTTP-01 always), wait for the readiness gate, and ask the authority
   to verify each challenge.
3. Poll until the authorization leaves ``pending`` or the attempt
   budget is spent.
4. Withdraw the published responses whatever the outcome.

Business outcomes are returned as :class:`~autocert.core.results.AuthorizationSuccess`
or :class:`~autocert.core.results.AuthorizationFailure`; errors reported
by the authority (:class:`~autocert.authority.base.AuthorityError`) become
failures of the domain they occurred for.  Only transport errors and
cancellation propagate as exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, assert_never

from autocert.authority.base import AuthorityError
from autocert.core.results import (
    AuthorizationFailure,
    AuthorizationOutcome,
    AuthorizationSuccess,
    FailureKind,
)
from autocert.core.types import AuthorizationStatus, ChallengeType
from autocert.logging import acme_events
from autocert.logging.setup import current_domain

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from autocert.accounts.manager import AccountSession
    from autocert.challenge.http01 import HttpChallengeStore
    from autocert.challenge.tls_alpn01 import TlsAlpnChallengeResponder
    from autocert.core.readiness import ReadinessGate
    from autocert.models import Authorization, Challenge

log = logging.getLogger(__name__)

DEFAULT_POLL_ATTEMPTS = 60
DEFAULT_POLL_INTERVAL = 2.0


class ChallengeUnavailableError(Exception):
    """The authority did not offer a challenge type we need.

    Parameters
    ----------
    detail:
        Human-readable description.
    challenge_type:
        The missing challenge type.

    """

    def __init__(self, detail: str, *, challenge_type: ChallengeType) -> None:
        self.detail = detail
        self.challenge_type = challenge_type
        super().__init__(detail)


def describe_invalid(authorization: Authorization) -> str:
    """Aggregate the challenge errors of an invalid authorization."""
    errors = [error.describe() for error in authorization.errors()]
    return "; ".join(errors) if errors else "unknown"


class AuthorizationValidator:
    """Per-domain authorization state machine.

    Parameters
    ----------
    http_store:
        Where HTTP-01 key authorizations are published.
    tls_responder:
        TLS-ALPN-01 certificate holder; consulted only when enabled.
    gate:
        Fires once the challenge endpoint accepts connections.
    poll_attempts:
        Maximum number of status polls after the challenges are answered.
    poll_interval:
        Seconds to sleep after each poll that finds the authorization pending.
    sleep:
        Awaitable sleep used between polls.

    """

    def __init__(
        self,
        http_store: HttpChallengeStore,
        tls_responder: TlsAlpnChallengeResponder,
        gate: ReadinessGate,
        *,
        poll_attempts: int = DEFAULT_POLL_ATTEMPTS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if poll_attempts < 1:
            msg = f"poll_attempts must be at least 1, got {poll_attempts}"
            raise ValueError(msg)
        self._http_store = http_store
        self._tls_responder = tls_responder
        self._gate = gate
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._sleep = sleep

    @property
    def poll_attempts(self) -> int:
        return self._poll_attempts

    async def validate(
        self,
        session: AccountSession,
        authorization_uri: str,
    ) -> AuthorizationOutcome:
        """Drive one authorization to a terminal outcome."""
        try:
            authorization = await session.client.get_authorization(authorization_uri)
        except AuthorityError as exc:
            # No domain is known before the first fetch.
            return self._authority_failure(authorization_uri, exc, attempts=0)
        domain = authorization.domain
        token = current_domain.set(domain)
        try:
            if authorization.status is AuthorizationStatus.VALID:
                log.debug("Authorization for %s is already valid", domain)
                return AuthorizationSuccess(domain)

            if authorization.status is not AuthorizationStatus.PENDING:
                outcome = self._classify(authorization, attempts=0)
                if outcome is not None:
                    return outcome

            return await self._validate_pending(session, authorization)
        finally:
            current_domain.reset(token)

    async def _validate_pending(
        self,
        session: AccountSession,
        authorization: Authorization,
    ) -> AuthorizationOutcome:
        domain = authorization.domain
        log.debug("Requesting authorization to create certificate for %s", domain)
        tls_enabled = self._tls_responder.is_enabled
        try:
            try:
                if tls_enabled:
                    await self._request_tls_alpn(session, authorization)
                await self._request_http(session, authorization)
            except ChallengeUnavailableError as exc:
                log.error("Cannot validate %s: %s", domain, exc.detail)
                return AuthorizationFailure(
                    domain,
                    FailureKind.CHALLENGE_UNAVAILABLE,
                    exc.detail,
                )
            except AuthorityError as exc:
                return self._authority_failure(domain, exc, attempts=0)

            return await self._poll(session, authorization.uri, domain)
        finally:
            if tls_enabled:
                # Skip the certificate lookup on later handshakes.
                self._tls_responder.discard_challenge(domain)
            self._withdraw_http(authorization)

    # -- challenge preparation ------------------------------------------------

    @staticmethod
    def _require_challenge(
        authorization: Authorization,
        challenge_type: ChallengeType,
    ) -> Challenge:
        challenge = authorization.find_challenge(challenge_type)
        if challenge is None:
            msg = f"Did not receive challenge information for challenge type {challenge_type}"
            raise ChallengeUnavailableError(msg, challenge_type=challenge_type)
        return challenge

    async def _request_tls_alpn(self, session: AccountSession, authorization: Authorization) -> None:
        challenge = self._require_challenge(authorization, ChallengeType.TLS_ALPN_01)
        self._tls_responder.prepare_challenge_cert(
            authorization.domain,
            challenge.key_authorization,
        )

        log.debug("Waiting for server to start accepting connections")
        await self._gate.wait()

        log.debug("Requesting server to validate TLS-ALPN challenge")
        await session.client.answer_challenge(challenge)
        acme_events.challenge_answered(authorization.domain, challenge.type)

    async def _request_http(self, session: AccountSession, authorization: Authorization) -> None:
        challenge = self._require_challenge(authorization, ChallengeType.HTTP_01)
        self._http_store.add_challenge_response(challenge.token, challenge.key_authorization)

        log.debug("Waiting for server to start accepting HTTP requests")
        await self._gate.wait()

        log.debug("Requesting server to validate HTTP challenge")
        await session.client.answer_challenge(challenge)
        acme_events.challenge_answered(authorization.domain, challenge.type)

    def _withdraw_http(self, authorization: Authorization) -> None:
        challenge = authorization.find_challenge(ChallengeType.HTTP_01)
        if challenge is not None and self._http_store.remove(challenge.token):
            log.debug("Withdrew HTTP-01 response for %s", authorization.domain)

    # -- polling ----------------------------------------------------------------

    async def _poll(
        self,
        session: AccountSession,
        authorization_uri: str,
        domain: str,
    ) -> AuthorizationOutcome:
        for attempt in range(1, self._poll_attempts + 1):
            try:
                authorization = await session.client.get_authorization(authorization_uri)
            except AuthorityError as exc:
                return self._authority_failure(domain, exc, attempts=attempt)
            acme_events.authorization_polled(domain, authorization.status, attempt)

            outcome = self._classify(authorization, attempts=attempt)
            if outcome is not None:
                return outcome

            await self._sleep(self._poll_interval)

        log.error("Timed out waiting for domain ownership validation of %s", domain)
        return AuthorizationFailure(
            domain,
            FailureKind.TIMEOUT,
            "Timed out waiting for domain ownership validation",
            attempts=self._poll_attempts,
        )

    @staticmethod
    def _authority_failure(
        domain: str,
        exc: AuthorityError,
        *,
        attempts: int,
    ) -> AuthorizationFailure:
        log.error("The authority rejected validation of %s: %s", domain, exc)
        return AuthorizationFailure(domain, FailureKind.AUTHORITY_ERROR, str(exc), attempts)

    @staticmethod
    def _classify(authorization: Authorization, *, attempts: int) -> AuthorizationOutcome | None:
        """Map a status onto an outcome; ``None`` means keep polling."""
        domain = authorization.domain
        status = authorization.status

        if status is AuthorizationStatus.VALID:
            return AuthorizationSuccess(domain)
        if status is AuthorizationStatus.PENDING:
            return None
        if status is AuthorizationStatus.INVALID:
            reason = describe_invalid(authorization)
            log.error(
                "Failed to validate ownership of domain '%s'. Reason: %s",
                domain,
                reason,
            )
            return AuthorizationFailure(domain, FailureKind.INVALID, reason, attempts)
        if status is AuthorizationStatus.REVOKED:
            return AuthorizationFailure(
                domain,
                FailureKind.REVOKED,
                f"The authorization to verify domain '{domain}' has been revoked",
                attempts,
            )
        if status is AuthorizationStatus.EXPIRED:
            return AuthorizationFailure(
                domain,
                FailureKind.EXPIRED,
                f"The authorization to verify domain '{domain}' has expired",
                attempts,
            )
        if status is AuthorizationStatus.DEACTIVATED or status is AuthorizationStatus.UNKNOWN:
            return AuthorizationFailure(
                domain,
                FailureKind.UNEXPECTED_STATUS,
                f"Unexpected authorization status '{status}' from server "
                "while validating domain ownership",
                attempts,
            )
        assert_never(status)
