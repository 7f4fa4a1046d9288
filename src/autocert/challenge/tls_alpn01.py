"""TLS-ALPN-01 challenge responder (RFC 8737).

For every domain under validation the responder holds a throwaway
self-signed certificate whose SAN is the domain and whose critical
``acmeIdentifier`` extension carries the SHA-256 digest of the key
authorization.  A TLS server asks :meth:`TlsAlpnChallengeResponder.select_certificate`
during the handshake; the challenge certificate is only presented when
the client offers the ``acme-tls/1`` ALPN protocol.

Certificates are discarded as soon as the authorization reaches a
terminal state, so ordinary handshakes skip the lookup entirely once
nothing is pending.
"""

from __future__ import annotations

import datetime
import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID, ObjectIdentifier

if TYPE_CHECKING:
    from collections.abc import Iterable

log = logging.getLogger(__name__)

# OID for the acmeIdentifier extension (RFC 8737 §3)
ACME_IDENTIFIER_OID = ObjectIdentifier("1.3.6.1.5.5.7.1.31")

# ALPN protocol identifier
ACME_TLS_ALPN = "acme-tls/1"

# DER header of an OCTET STRING holding a 32-byte SHA-256 digest
_OCTET_STRING_32 = b"\x04\x20"

_VALIDITY = datetime.timedelta(days=1)


@dataclass(frozen=True)
class ChallengeCertificate:
    """A challenge certificate and its private key."""

    domain: str
    certificate: x509.Certificate
    private_key: ec.EllipticCurvePrivateKey = field(repr=False)

    def certificate_pem(self) -> bytes:
        return self.certificate.public_bytes(serialization.Encoding.PEM)

    def private_key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


def acme_identifier_value(key_authorization: str) -> bytes:
    """DER encoding of the ``acmeIdentifier`` extension value."""
    digest = hashlib.sha256(key_authorization.encode("ascii")).digest()
    return _OCTET_STRING_32 + digest


def build_challenge_certificate(domain: str, key_authorization: str) -> ChallengeCertificate:
    """Create the self-signed certificate answering a TLS-ALPN-01 challenge."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domain)])
    now = datetime.datetime.now(datetime.UTC)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - _VALIDITY)
        .not_valid_after(now + _VALIDITY)
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(domain)]),
            critical=False,
        )
        .add_extension(
            x509.UnrecognizedExtension(
                ACME_IDENTIFIER_OID,
                acme_identifier_value(key_authorization),
            ),
            critical=True,
        )
        .sign(key, hashes.SHA256())
    )
    return ChallengeCertificate(domain=domain, certificate=certificate, private_key=key)


class TlsAlpnChallengeResponder:
    """Holds challenge certificates keyed by domain.

    Parameters
    ----------
    enabled:
        Whether TLS-ALPN-01 validation is requested at all.  When
        disabled the validator never touches the responder.

    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = enabled
        self._certs: dict[str, ChallengeCertificate] = {}
        self._lock = threading.Lock()

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def has_pending_challenges(self) -> bool:
        with self._lock:
            return bool(self._certs)

    def prepare_challenge_cert(self, domain: str, key_authorization: str) -> ChallengeCertificate:
        """Build and register the challenge certificate for *domain*."""
        cert = build_challenge_certificate(domain, key_authorization)
        with self._lock:
            self._certs[domain.lower()] = cert
        log.debug("Prepared TLS-ALPN-01 certificate for %s", domain)
        return cert

    def discard_challenge(self, domain: str) -> None:
        """Forget the challenge certificate for *domain*, if any."""
        with self._lock:
            removed = self._certs.pop(domain.lower(), None)
        if removed is not None:
            log.debug("Discarded TLS-ALPN-01 certificate for %s", domain)

    def select_certificate(
        self,
        server_name: str | None,
        alpn_protocols: Iterable[str],
    ) -> ChallengeCertificate | None:
        """Certificate to present for a handshake, or ``None`` for the default one."""
        if server_name is None or ACME_TLS_ALPN not in alpn_protocols:
            return None
        with self._lock:
            return self._certs.get(server_name.lower())
