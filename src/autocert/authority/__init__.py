"""Access to ACME certificate authorities."""

from autocert.authority.base import (
    LETS_ENCRYPT_PRODUCTION,
    LETS_ENCRYPT_STAGING,
    AccountResource,
    AuthorityClient,
    AuthorityConnector,
    AuthorityError,
)

__all__ = [
    "LETS_ENCRYPT_PRODUCTION",
    "LETS_ENCRYPT_STAGING",
    "AccountResource",
    "AuthorityClient",
    "AuthorityConnector",
    "AuthorityError",
]
