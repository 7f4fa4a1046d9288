"""Certificate assembly: key generation, CSR, finalization and bundling."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from autocert.core.types import KeyAlgorithm
from autocert.logging import acme_events
from autocert.models import CertificateBundle

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
    )

    from autocert.accounts.manager import AccountSession
    from autocert.models import Order

log = logging.getLogger(__name__)

_RSA_KEY_SIZE = 2048

_EC_CURVES: dict[KeyAlgorithm, type[ec.EllipticCurve]] = {
    KeyAlgorithm.ES256: ec.SECP256R1,
    KeyAlgorithm.ES384: ec.SECP384R1,
    KeyAlgorithm.ES512: ec.SECP521R1,
}


def generate_private_key(algorithm: KeyAlgorithm) -> CertificateIssuerPrivateKeyTypes:
    """New certificate key for *algorithm*."""
    if algorithm == KeyAlgorithm.RS256:
        return rsa.generate_private_key(public_exponent=65537, key_size=_RSA_KEY_SIZE)
    curve = _EC_CURVES.get(algorithm)
    if curve is None:
        msg = f"Unsupported key algorithm: {algorithm}"
        raise ValueError(msg)
    return ec.generate_private_key(curve())


def build_csr(
    domains: Sequence[str],
    private_key: CertificateIssuerPrivateKeyTypes,
) -> x509.CertificateSigningRequest:
    """CSR with CN = first domain and every domain as a DNS SAN."""
    if not domains:
        msg = "A certificate request needs at least one domain"
        raise ValueError(msg)
    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domains[0])]))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(d) for d in domains]),
            critical=False,
        )
        .sign(private_key, hashes.SHA256())
    )


class CertificateAssembler:
    """Finalizes an order and packages the issued certificate.

    Parameters
    ----------
    key_algorithm:
        Algorithm of the certificate's private key.

    """

    def __init__(self, key_algorithm: KeyAlgorithm = KeyAlgorithm.ES256) -> None:
        self._key_algorithm = key_algorithm

    async def finalize(
        self,
        session: AccountSession,
        order: Order,
        domains: Sequence[str],
    ) -> CertificateBundle:
        """Submit a CSR for *order* and return the issued bundle.

        The common name is always ``domains[0]``, whatever order the
        authority lists the order's identifiers in.
        """
        domains = tuple(domains)
        log.debug("Creating cert for %s", domains[0] if domains else None)

        private_key = generate_private_key(self._key_algorithm)
        csr = build_csr(domains, private_key)
        csr_pem = csr.public_bytes(serialization.Encoding.PEM)

        fullchain_pem = await session.client.finalize_order(order, csr_pem)
        bundle = CertificateBundle(
            domains=domains,
            fullchain_pem=fullchain_pem,
            private_key=private_key,
        )
        acme_events.certificate_issued(
            list(domains),
            format(bundle.certificate.serial_number, "x"),
        )
        return bundle
