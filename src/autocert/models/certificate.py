"""Issued certificate bundle."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
    )


@dataclass(frozen=True)
class CertificateBundle:
    """Issued certificate chain plus the private key it was requested with.

    Attributes
    ----------
    domains:
        The configured domain list, in configured order.
    fullchain_pem:
        Leaf certificate followed by the intermediates, PEM encoded.
    private_key:
        The key the certificate signing request was signed with.

    """

    domains: tuple[str, ...]
    fullchain_pem: str
    private_key: CertificateIssuerPrivateKeyTypes = field(repr=False)

    @property
    def chain(self) -> list[x509.Certificate]:
        return x509.load_pem_x509_certificates(self.fullchain_pem.encode("ascii"))

    @property
    def certificate(self) -> x509.Certificate:
        """The leaf certificate."""
        return self.chain[0]

    @property
    def common_name(self) -> str | None:
        attrs = self.certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        if not attrs:
            return None
        value = attrs[0].value
        return value.decode() if isinstance(value, bytes) else value

    @property
    def friendly_name(self) -> str:
        return "HTTPS Cert - " + ", ".join(self.domains)

    def export_pkcs12(self, password: str = "") -> bytes:
        """Serialise the bundle as a PKCS#12 container.

        An empty *password* produces an unencrypted container.
        """
        chain = self.chain
        encryption: serialization.KeySerializationEncryption
        if password:
            encryption = serialization.BestAvailableEncryption(password.encode("utf-8"))
        else:
            encryption = serialization.NoEncryption()
        return pkcs12.serialize_key_and_certificates(
            self.friendly_name.encode("utf-8"),
            self.private_key,
            chain[0],
            chain[1:] or None,
            encryption,
        )

    def export_pem(self) -> bytes:
        """Full chain followed by the unencrypted PKCS#8 private key."""
        key_pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        chain = self.fullchain_pem
        if not chain.endswith("\n"):
            chain += "\n"
        return chain.encode("ascii") + key_pem
