"""Abstract interface to an ACME certificate authority.

The issuance services talk to the authority exclusively through
:class:`AuthorityClient`.  A client is bound to one account key; a
:class:`AuthorityConnector` produces clients for a given key so the
services never hold protocol state of their own.

Every method is a coroutine and may raise :class:`AuthorityError` when
the authority answers with an error document.  Transport failures are
not retried here.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from autocert.core.types import AccountStatus
    from autocert.models import Authorization, Challenge, Order

log = logging.getLogger(__name__)

LETS_ENCRYPT_PRODUCTION = "https://acme-v02.api.letsencrypt.org/directory"
LETS_ENCRYPT_STAGING = "https://acme-staging-v02.api.letsencrypt.org/directory"


class AuthorityError(Exception):
    """Raised when the authority reports a problem.

    Parameters
    ----------
    detail:
        Human-readable description from the problem document.
    type:
        Problem type URN, e.g. ``urn:ietf:params:acme:error:accountDoesNotExist``.
    status:
        HTTP status code of the response, when known.

    """

    def __init__(
        self,
        detail: str,
        *,
        type: str | None = None,  # noqa: A002
        status: int | None = None,
    ) -> None:
        self.detail = detail
        self.type = type
        self.status = status
        super().__init__(detail)

    def __str__(self) -> str:
        parts = [p for p in (self.type, self.detail) if p]
        text = " :: ".join(parts) or "unknown authority error"
        if self.status is not None:
            text += f" (status {self.status})"
        return text


@dataclass(frozen=True)
class AccountResource:
    """The authority's view of an account."""

    uri: str
    status: AccountStatus
    contacts: tuple[str, ...] = ()
    terms_of_service_agreed: bool | None = None


class AuthorityClient(abc.ABC):
    """Asynchronous ACME operations for a single account key."""

    @property
    @abc.abstractmethod
    def directory_uri(self) -> str:
        """URI of the authority's directory resource."""

    @abc.abstractmethod
    async def get_terms_of_service(self) -> str | None:
        """Return the current terms-of-service URI, if the authority has one."""

    @abc.abstractmethod
    async def new_account(self, email: str, *, terms_agreed: bool) -> AccountResource:
        """Register a new account for the bound key."""

    @abc.abstractmethod
    async def get_account(self) -> AccountResource:
        """Look up the existing account for the bound key.

        Raises :class:`AuthorityError` if no account matches the key.
        """

    @abc.abstractmethod
    async def agree_to_terms(self) -> AccountResource:
        """Record terms-of-service agreement on the existing account."""

    @abc.abstractmethod
    async def list_orders(self) -> list[Order]:
        """Return the orders the authority lists for the account."""

    @abc.abstractmethod
    async def new_order(self, domains: Sequence[str]) -> Order:
        """Create an order for exactly *domains*."""

    @abc.abstractmethod
    async def get_authorization(self, uri: str) -> Authorization:
        """Fetch the current state of an authorization."""

    @abc.abstractmethod
    async def answer_challenge(self, challenge: Challenge) -> None:
        """Ask the authority to verify *challenge*."""

    @abc.abstractmethod
    async def finalize_order(self, order: Order, csr_pem: bytes) -> str:
        """Submit *csr_pem* for *order* and return the issued full chain (PEM)."""


class AuthorityConnector(abc.ABC):
    """Creates :class:`AuthorityClient` instances bound to an account key."""

    @abc.abstractmethod
    async def connect(self, account_key: PrivateKeyTypes) -> AuthorityClient:
        """Discover the directory and return a client bound to *account_key*."""
