"""ACME protocol action log.

Every request autocert makes to the certificate authority that changes
or observes issuance state is recorded on the ``autocert.acme`` logger
with a stable ``acme_action`` field for filtering.  PEM bodies are
redacted before emission.
"""

from __future__ import annotations

import logging
import re
from typing import Any

acme_log = logging.getLogger("autocert.acme")

_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks with ``[REDACTED]``."""

    def _redact(m: re.Match[str]) -> str:
        return f"{m.group(1)}\n[REDACTED]\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def _sanitize(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, str) and "-----BEGIN " in value:
        return sanitize_pem(value)
    if isinstance(value, (list, tuple)):
        return type(value)(_sanitize(v) for v in value)
    return value


def acme_action(
    action: str,
    message: str = "ACME action: %s",
    *args: Any,  # noqa: ANN401
    level: int = logging.DEBUG,
    **extra: Any,  # noqa: ANN401
) -> None:
    """Record one ACME protocol action."""
    data = {k: _sanitize(v) for k, v in extra.items()}
    data["acme_action"] = action
    acme_log.log(level, message, *(args or (action,)), extra=data)


def account_registered(account_uri: str, email: str) -> None:
    acme_action(
        "NewRegistration",
        "Registered ACME account %s for %s",
        account_uri,
        email,
        level=logging.INFO,
        account_uri=account_uri,
    )


def order_created(order_uri: str, domains: list[str]) -> None:
    acme_action(
        "NewOrder",
        "Created order %s for %s",
        order_uri,
        domains,
        order_uri=order_uri,
    )


def authorization_polled(domain: str, status: str, attempt: int) -> None:
    acme_action(
        "GetAuthorization",
        "Authorization for %s is %s (attempt %d)",
        domain,
        status,
        attempt,
        status=status,
    )


def challenge_answered(domain: str, challenge_type: str) -> None:
    acme_action(
        "AnswerChallenge",
        "Requested %s validation for %s",
        challenge_type,
        domain,
        challenge_type=challenge_type,
    )


def certificate_issued(domains: list[str], serial_number: str) -> None:
    acme_action(
        "NewCertificate",
        "Certificate issued: serial=%s, domains=%s",
        serial_number,
        domains,
        level=logging.INFO,
        serial_number=serial_number,
    )
