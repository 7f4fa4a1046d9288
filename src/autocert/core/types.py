"""Enumerated types shared by the autocert models and services.

All enums inherit from ``StrEnum`` so their ``.value`` is the plain
string the ACME authority sends on the wire.  Every status enum carries
an explicit ``UNKNOWN`` member: a value the authority reports that this
client does not recognise is mapped onto it instead of raising, so the
set of statuses handled by the services is closed.
"""

from __future__ import annotations

from enum import StrEnum


class _StatusEnum(StrEnum):
    """Status enum that folds unrecognised values into ``UNKNOWN``."""

    @classmethod
    def _missing_(cls, value: object) -> _StatusEnum:
        if isinstance(value, str):
            lowered = value.lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls("unknown")


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


class AccountStatus(_StatusEnum):
    VALID = "valid"
    DEACTIVATED = "deactivated"
    REVOKED = "revoked"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


class OrderStatus(_StatusEnum):
    PENDING = "pending"
    READY = "ready"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationStatus(_StatusEnum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"
    DEACTIVATED = "deactivated"
    EXPIRED = "expired"
    REVOKED = "revoked"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------


class ChallengeStatus(_StatusEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class IdentifierType(StrEnum):
    DNS = "dns"
    IP = "ip"


# ---------------------------------------------------------------------------
# Challenge types
# ---------------------------------------------------------------------------


class ChallengeType(StrEnum):
    HTTP_01 = "http-01"
    DNS_01 = "dns-01"
    TLS_ALPN_01 = "tls-alpn-01"


# ---------------------------------------------------------------------------
# Certificate key algorithms
# ---------------------------------------------------------------------------


class KeyAlgorithm(StrEnum):
    """Private key algorithm used for the certificate signing request.

    Names follow the JWS algorithm identifiers: ``RS256`` is RSA 2048,
    the ``ES*`` members are ECDSA over P-256, P-384 and P-521.
    """

    RS256 = "RS256"
    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"
