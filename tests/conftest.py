"""Root conftest for the autocert test suite."""

from __future__ import annotations

import datetime
import logging
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from cryptography import x509  # noqa: E402
from cryptography.hazmat.primitives import hashes, serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.x509.oid import NameOID  # noqa: E402

from autocert.core.types import (  # noqa: E402
    AuthorizationStatus,
    ChallengeStatus,
    ChallengeType,
    IdentifierType,
)
from autocert.models import Authorization, Challenge, Identifier, ProblemDetail  # noqa: E402

# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "domains": ["example.com", "www.example.com"],
        "email": "admin@example.com",
        "accept_terms_of_service": True,
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# Config singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the AutocertConfig singleton before and after every test."""
    from autocert.config.autocert_config import AutocertConfig

    AutocertConfig.reset()
    yield
    AutocertConfig.reset()


@pytest.fixture(autouse=True)
def restore_autocert_logger():
    """Undo any handler, level or propagation changes made by configure_logging."""
    logger = logging.getLogger("autocert")
    acme_logger = logging.getLogger("autocert.acme")
    saved = (list(logger.handlers), logger.level, logger.propagate, acme_logger.level)
    yield
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
    acme_logger.setLevel(saved[3])


# ---------------------------------------------------------------------------
# Authority fakes
# ---------------------------------------------------------------------------


def build_challenge(
    challenge_type: ChallengeType,
    domain: str,
    *,
    error: ProblemDetail | None = None,
) -> Challenge:
    token = f"token-{challenge_type}-{domain}"
    return Challenge(
        type=challenge_type,
        uri=f"https://ca.test/chall/{challenge_type}/{domain}",
        token=token,
        key_authorization=f"{token}.thumbprint",
        status=ChallengeStatus.INVALID if error else ChallengeStatus.PENDING,
        error=error,
    )


def build_authorization(
    domain: str,
    status: AuthorizationStatus = AuthorizationStatus.PENDING,
    *,
    challenge_types: tuple[ChallengeType, ...] = (
        ChallengeType.HTTP_01,
        ChallengeType.TLS_ALPN_01,
    ),
    errors: tuple[ProblemDetail, ...] = (),
) -> Authorization:
    challenges = [build_challenge(t, domain) for t in challenge_types]
    for idx, error in enumerate(errors):
        challenges[idx % len(challenges)] = build_challenge(
            challenges[idx % len(challenges)].type,
            domain,
            error=error,
        )
    return Authorization(
        uri=f"https://ca.test/authz/{domain}",
        identifier=Identifier(type=IdentifierType.DNS, value=domain),
        status=status,
        challenges=tuple(challenges),
    )


@pytest.fixture()
def make_authorization():
    """Factory fixture building :class:`Authorization` objects."""
    return build_authorization


@pytest.fixture()
def authority_client() -> MagicMock:
    """An :class:`AuthorityClient` double with every coroutine as AsyncMock."""
    client = MagicMock()
    client.directory_uri = "https://ca.test/directory"
    client.get_terms_of_service = AsyncMock(return_value="https://ca.test/terms")
    client.new_account = AsyncMock()
    client.get_account = AsyncMock()
    client.agree_to_terms = AsyncMock()
    client.list_orders = AsyncMock(return_value=[])
    client.new_order = AsyncMock()
    client.get_authorization = AsyncMock()
    client.answer_challenge = AsyncMock()
    client.finalize_order = AsyncMock()
    return client


@pytest.fixture()
def session(authority_client):
    """An :class:`AccountSession` around the :func:`authority_client` double."""
    from autocert.accounts.manager import AccountSession
    from autocert.models import Account

    return AccountSession(
        account=Account(id=42, email_addresses=("admin@example.com",), private_key=b"der"),
        client=authority_client,
        account_uri="https://ca.test/acct/42",
    )


# ---------------------------------------------------------------------------
# Test CA: turns a CSR into a PEM full chain
# ---------------------------------------------------------------------------


class _TestCA:
    def __init__(self) -> None:
        self.key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "autocert test CA")])
        now = datetime.datetime.now(datetime.UTC)
        self.certificate = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(days=1))
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(self.key, hashes.SHA256())
        )

    def sign_csr(self, csr_pem: bytes) -> str:
        csr = x509.load_pem_x509_csr(csr_pem)
        san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        now = datetime.datetime.now(datetime.UTC)
        leaf = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(self.certificate.subject)
            .public_key(csr.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + datetime.timedelta(days=7))
            .add_extension(san, critical=False)
            .sign(self.key, hashes.SHA256())
        )
        return (
            leaf.public_bytes(serialization.Encoding.PEM)
            + self.certificate.public_bytes(serialization.Encoding.PEM)
        ).decode("ascii")


@pytest.fixture(scope="session")
def test_ca() -> _TestCA:
    return _TestCA()
