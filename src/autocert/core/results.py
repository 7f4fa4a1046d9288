"""Outcome values for per-domain authorization validation.

Validation of a single authorization never raises for a business
outcome (invalid, revoked, expired, timed out, ...).  It returns either
:class:`AuthorizationSuccess` or :class:`AuthorizationFailure`, and the
caller decides what a failure means for the issuance as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class FailureKind(StrEnum):
    """Why a domain's authorization did not become valid."""

    INVALID = "invalid"
    REVOKED = "revoked"
    EXPIRED = "expired"
    UNEXPECTED_STATUS = "unexpected_status"
    TIMEOUT = "timeout"
    CHALLENGE_UNAVAILABLE = "challenge_unavailable"
    AUTHORITY_ERROR = "authority_error"


@dataclass(frozen=True)
class AuthorizationSuccess:
    domain: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class AuthorizationFailure:
    """A terminal, non-retried failure for one domain.

    Attributes
    ----------
    domain:
        The DNS name whose ownership could not be proven.
    kind:
        Failure classification.
    reason:
        Human-readable description suitable for operators.
    attempts:
        Number of status polls performed before giving up.

    """

    domain: str
    kind: FailureKind
    reason: str
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.domain}: {self.reason} ({self.kind.value})"


AuthorizationOutcome = AuthorizationSuccess | AuthorizationFailure
