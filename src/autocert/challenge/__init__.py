"""Challenge responders for HTTP-01 and TLS-ALPN-01."""

from autocert.challenge.http01 import (
    WELL_KNOWN_PREFIX,
    HttpChallengeStore,
    InMemoryHttpChallengeStore,
    WebrootHttpChallengeStore,
)
from autocert.challenge.tls_alpn01 import (
    ACME_TLS_ALPN,
    ChallengeCertificate,
    TlsAlpnChallengeResponder,
)

__all__ = [
    "ACME_TLS_ALPN",
    "WELL_KNOWN_PREFIX",
    "ChallengeCertificate",
    "HttpChallengeStore",
    "InMemoryHttpChallengeStore",
    "TlsAlpnChallengeResponder",
    "WebrootHttpChallengeStore",
]
