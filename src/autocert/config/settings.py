"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from autocert.config import get_config

    authority = get_config().settings.authority
    print(authority.directory_url)
"""

from __future__ import annotations

from dataclasses import dataclass

from autocert.authority.base import LETS_ENCRYPT_PRODUCTION, LETS_ENCRYPT_STAGING
from autocert.core.types import KeyAlgorithm

# ---------------------------------------------------------------------------
# Authority
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthoritySettings:
    """Certificate authority endpoint and HTTP client settings."""

    directory_url: str
    use_staging: bool
    user_agent: str
    timeout_seconds: int
    verify_ssl: bool
    finalize_timeout_seconds: int


def _build_authority(data: dict | None) -> AuthoritySettings:
    d = data or {}
    use_staging = d.get("use_staging", False)
    default_url = LETS_ENCRYPT_STAGING if use_staging else LETS_ENCRYPT_PRODUCTION
    return AuthoritySettings(
        directory_url=d.get("directory_url") or default_url,
        use_staging=use_staging,
        user_agent=d.get("user_agent", "autocert"),
        timeout_seconds=d.get("timeout_seconds", 45),
        verify_ssl=d.get("verify_ssl", True),
        finalize_timeout_seconds=d.get("finalize_timeout_seconds", 90),
    )


# ---------------------------------------------------------------------------
# Account store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountStoreSettings:
    """Where the authority account is persisted."""

    backend: str
    path: str


def _build_account_store(data: dict | None) -> AccountStoreSettings:
    d = data or {}
    return AccountStoreSettings(
        backend=d.get("backend", "file"),
        path=d.get("path", "./autocert-data/accounts"),
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Http01Settings:
    """HTTP-01 responder endpoint."""

    bind: str
    port: int


@dataclass(frozen=True)
class TlsAlpn01Settings:
    """TLS-ALPN-01 responder switch."""

    enabled: bool


@dataclass(frozen=True)
class ChallengeSettings:
    """Challenge responders and authorization polling."""

    http01: Http01Settings
    tls_alpn01: TlsAlpn01Settings
    poll_attempts: int
    poll_interval_seconds: float


def _build_challenges(data: dict | None) -> ChallengeSettings:
    d = data or {}
    h = d.get("http01") or {}
    t = d.get("tls_alpn01") or {}
    return ChallengeSettings(
        http01=Http01Settings(
            bind=h.get("bind", "0.0.0.0"),  # noqa: S104
            port=h.get("port", 80),
        ),
        tls_alpn01=TlsAlpn01Settings(
            enabled=t.get("enabled", False),
        ),
        poll_attempts=d.get("poll_attempts", 60),
        poll_interval_seconds=float(d.get("poll_interval_seconds", 2)),
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutputSettings:
    """Where the issued certificate is written."""

    pfx_path: str
    pfx_password: str
    pem_path: str | None


def _build_output(data: dict | None) -> OutputSettings:
    d = data or {}
    return OutputSettings(
        pfx_path=d.get("pfx_path", "./autocert-data/certificate.pfx"),
        pfx_password=d.get("pfx_password", ""),
        pem_path=d.get("pem_path"),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format)."""

    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AutocertSettings:
    """Root of the typed settings tree."""

    domains: tuple[str, ...]
    email: str
    accept_terms_of_service: bool
    key_algorithm: KeyAlgorithm
    authority: AuthoritySettings
    account_store: AccountStoreSettings
    challenges: ChallengeSettings
    output: OutputSettings
    logging: LoggingSettings


def build_settings(data: dict) -> AutocertSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`AutocertConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return AutocertSettings(
        domains=tuple(data["domains"]),
        email=data["email"],
        accept_terms_of_service=data.get("accept_terms_of_service", False),
        key_algorithm=KeyAlgorithm(data.get("key_algorithm", "ES256")),
        authority=_build_authority(data.get("authority")),
        account_store=_build_account_store(data.get("account_store")),
        challenges=_build_challenges(data.get("challenges")),
        output=_build_output(data.get("output")),
        logging=_build_logging(data.get("logging")),
    )
