"""Account bootstrap and validation.

:class:`AccountManager` produces an :class:`AccountSession`: the stored
(or newly registered) account together with an authority client bound
to its key.  The session is an immutable value that the caller passes
explicitly to the order, authorization and certificate services.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from autocert.authority.base import AuthorityError
from autocert.core.types import AccountStatus
from autocert.logging import acme_events
from autocert.models import Account

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

    from autocert.accounts.base import AccountStore
    from autocert.accounts.tos import TermsOfServiceChecker
    from autocert.authority.base import AuthorityClient, AuthorityConnector

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountSession:
    """An account plus the authority client bound to its key."""

    account: Account
    client: AuthorityClient
    account_uri: str


def account_id_from_uri(uri: str) -> int:
    """Numeric id from the last path segment of an account URI, else ``0``."""
    segment = urlsplit(uri).path.rstrip("/").rsplit("/", 1)[-1]
    try:
        return int(segment)
    except ValueError:
        return 0


def _key_to_der(key: PrivateKeyTypes) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class AccountManager:
    """Obtains a usable authority account.

    Parameters
    ----------
    store:
        Where the account is persisted.
    connector:
        Builds authority clients bound to an account key.
    tos_checker:
        Policy consulted before agreeing to the authority's terms.
    email:
        Contact address for newly registered accounts.

    """

    def __init__(
        self,
        store: AccountStore,
        connector: AuthorityConnector,
        tos_checker: TermsOfServiceChecker,
        *,
        email: str,
    ) -> None:
        self._store = store
        self._connector = connector
        self._tos_checker = tos_checker
        self._email = email

    async def get_or_create_account(self) -> AccountSession:
        """Return a session for the stored account, registering one if needed.

        A stored account that the authority still reports as valid is
        reused without touching the store.  An account the authority
        does not recognise, or reports in any other status, is replaced
        by a freshly registered one.

        Raises
        ------
        TermsOfServiceNotAcceptedError
            If the authority has terms the configuration does not accept.
        AuthorityError
            If registration fails.

        """
        account = await self._store.get_account()

        if account is not None:
            key = serialization.load_der_private_key(account.private_key, password=None)
            client = await self._connector.connect(key)
            log.info("Using certificate authority %s", client.directory_uri)

            session = await self._validate_existing(account, client)
            if session is not None:
                return session

        return await self._create_account()

    async def _validate_existing(
        self,
        account: Account,
        client: AuthorityClient,
    ) -> AccountSession | None:
        try:
            resource = await client.get_account()
        except AuthorityError as exc:
            log.warning(
                "An account key was found, but could not be matched to a valid account. "
                "Validation error: %s",
                exc,
            )
            return None

        if resource.status != AccountStatus.VALID:
            log.warning(
                "An account key was found, but the account is no longer valid. "
                "Account status: %s. A new account will be registered.",
                resource.status,
            )
            return None

        log.info("Using existing account for %s", ", ".join(resource.contacts))

        if resource.terms_of_service_agreed is not True:
            tos_uri = await client.get_terms_of_service()
            self._tos_checker.ensure_terms_are_accepted(tos_uri)
            await client.agree_to_terms()
            acme_events.acme_action("UpdateRegistration")

        return AccountSession(account=account, client=client, account_uri=resource.uri)

    async def _create_account(self) -> AccountSession:
        key = ec.generate_private_key(ec.SECP256R1())
        client = await self._connector.connect(key)
        log.info("Using certificate authority %s", client.directory_uri)

        tos_uri = await client.get_terms_of_service()
        self._tos_checker.ensure_terms_are_accepted(tos_uri)

        log.info("Creating new account for %s", self._email)
        resource = await client.new_account(self._email, terms_agreed=True)
        acme_events.account_registered(resource.uri, self._email)

        account = Account(
            id=account_id_from_uri(resource.uri),
            email_addresses=(self._email,),
            private_key=_key_to_der(key),
        )
        await self._store.save_account(account)

        return AccountSession(account=account, client=client, account_uri=resource.uri)
