"""Tests for autocert.challenge.tls_alpn01: challenge certificates."""

from __future__ import annotations

import hashlib

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from autocert.challenge.tls_alpn01 import (
    ACME_IDENTIFIER_OID,
    ACME_TLS_ALPN,
    TlsAlpnChallengeResponder,
    acme_identifier_value,
    build_challenge_certificate,
)

_KEYAUTH = "token-abc.thumbprint-xyz"


class TestChallengeCertificate:
    def test_identifier_value(self):
        value = acme_identifier_value(_KEYAUTH)
        assert value[:2] == b"\x04\x20"
        assert value[2:] == hashlib.sha256(_KEYAUTH.encode("ascii")).digest()

    def test_san_is_domain(self):
        cert = build_challenge_certificate("a.example.com", _KEYAUTH).certificate
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        assert san.value.get_values_for_type(x509.DNSName) == ["a.example.com"]

    def test_acme_identifier_is_critical(self):
        cert = build_challenge_certificate("a.example.com", _KEYAUTH).certificate
        ext = cert.extensions.get_extension_for_oid(ACME_IDENTIFIER_OID)
        assert ext.critical is True
        assert ext.value.value == acme_identifier_value(_KEYAUTH)

    def test_self_signed(self):
        cert = build_challenge_certificate("a.example.com", _KEYAUTH).certificate
        assert cert.issuer == cert.subject
        cert.verify_directly_issued_by(cert)

    def test_pem_exports(self):
        challenge = build_challenge_certificate("a.example.com", _KEYAUTH)
        assert challenge.certificate_pem().startswith(b"-----BEGIN CERTIFICATE-----")
        key = serialization.load_pem_private_key(challenge.private_key_pem(), password=None)
        assert key.public_key() == challenge.private_key.public_key()


class TestResponder:
    def test_initially_idle(self):
        responder = TlsAlpnChallengeResponder(enabled=True)
        assert responder.is_enabled
        assert not responder.has_pending_challenges

    def test_disabled_by_default(self):
        assert TlsAlpnChallengeResponder().is_enabled is False

    def test_select_requires_acme_alpn(self):
        responder = TlsAlpnChallengeResponder(enabled=True)
        prepared = responder.prepare_challenge_cert("a.example.com", _KEYAUTH)

        assert responder.select_certificate("a.example.com", [ACME_TLS_ALPN]) is prepared
        assert responder.select_certificate("a.example.com", ["h2", "http/1.1"]) is None
        assert responder.select_certificate(None, [ACME_TLS_ALPN]) is None

    def test_select_is_case_insensitive(self):
        responder = TlsAlpnChallengeResponder(enabled=True)
        prepared = responder.prepare_challenge_cert("A.Example.com", _KEYAUTH)
        assert responder.select_certificate("a.example.COM", [ACME_TLS_ALPN]) is prepared

    def test_select_unknown_domain(self):
        responder = TlsAlpnChallengeResponder(enabled=True)
        responder.prepare_challenge_cert("a.example.com", _KEYAUTH)
        assert responder.select_certificate("b.example.com", [ACME_TLS_ALPN]) is None

    def test_discard(self):
        responder = TlsAlpnChallengeResponder(enabled=True)
        responder.prepare_challenge_cert("a.example.com", _KEYAUTH)
        assert responder.has_pending_challenges

        responder.discard_challenge("a.example.com")
        responder.discard_challenge("a.example.com")

        assert not responder.has_pending_challenges
        assert responder.select_certificate("a.example.com", [ACME_TLS_ALPN]) is None
