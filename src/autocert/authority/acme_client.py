"""ACME authority client built on the ``acme`` and ``josepy`` libraries.

The ``acme`` library performs JWS signing, nonce handling and the
badNonce retry; everything it does is blocking, so every call is
dispatched to the default executor with :func:`asyncio.to_thread`.  A
task awaiting one of these calls can therefore be cancelled promptly
even though the HTTP request itself keeps running in its worker thread.

Resources are parsed from the raw JSON documents into autocert models
rather than through the library's message classes, so challenge types
the library does not model (``tls-alpn-01``) are handled the same way
as the ones it does.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import TYPE_CHECKING, Any, TypeVar

import josepy as jose
from acme import challenges as acme_challenges
from acme import client as acme_client
from acme import errors as acme_errors
from acme import messages
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from autocert.authority.base import (
    AccountResource,
    AuthorityClient,
    AuthorityConnector,
    AuthorityError,
)
from autocert.core.types import (
    AccountStatus,
    AuthorizationStatus,
    ChallengeStatus,
    ChallengeType,
    IdentifierType,
    OrderStatus,
)
from autocert.models import Authorization, Challenge, Identifier, Order, ProblemDetail

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import requests
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

log = logging.getLogger(__name__)

_T = TypeVar("_T")

_KNOWN_CHALLENGE_TYPES = frozenset(t.value for t in ChallengeType)

# Curve name -> JWS signature algorithm
_EC_ALGORITHMS = {
    "secp256r1": jose.ES256,
    "secp384r1": jose.ES384,
    "secp521r1": jose.ES512,
}


def jwk_for_key(key: PrivateKeyTypes) -> tuple[jose.JWK, jose.JWASignature]:
    """Wrap a cryptography private key as a JWK plus its signing algorithm."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        alg = _EC_ALGORITHMS.get(key.curve.name)
        if alg is None:
            msg = f"Unsupported account key curve: {key.curve.name}"
            raise ValueError(msg)
        return jose.JWKEC(key=key), alg
    if isinstance(key, rsa.RSAPrivateKey):
        return jose.JWKRSA(key=key), jose.RS256
    msg = f"Unsupported account key type: {type(key).__name__}"
    raise ValueError(msg)


def key_authorization(token: str, jwk: jose.JWK) -> str:
    """Compute the key authorization for *token* (RFC 8555 §8.1)."""
    thumbprint = jose.b64encode(jwk.thumbprint(hash_function=hashes.SHA256)).decode()
    return f"{token}.{thumbprint}"


# ---------------------------------------------------------------------------
# JSON -> model conversion
# ---------------------------------------------------------------------------


def _identifier_from_json(data: dict[str, Any]) -> Identifier:
    try:
        id_type = IdentifierType(data.get("type", "dns"))
    except ValueError:
        id_type = IdentifierType.DNS
    return Identifier(type=id_type, value=data["value"])


def _order_from_json(uri: str, data: dict[str, Any]) -> Order:
    return Order(
        uri=uri,
        status=OrderStatus(data.get("status", "unknown")),
        identifiers=tuple(_identifier_from_json(i) for i in data.get("identifiers", [])),
        authorizations=tuple(data.get("authorizations", [])),
        finalize=data.get("finalize"),
    )


def _challenge_from_json(data: dict[str, Any], jwk: jose.JWK) -> Challenge | None:
    if data.get("type") not in _KNOWN_CHALLENGE_TYPES:
        return None
    token = data.get("token", "")
    error = data.get("error")
    return Challenge(
        type=ChallengeType(data["type"]),
        uri=data.get("url", ""),
        token=token,
        key_authorization=key_authorization(token, jwk),
        status=ChallengeStatus(data.get("status", "unknown")),
        error=ProblemDetail.from_json(error) if error else None,
    )


def _authorization_from_json(uri: str, data: dict[str, Any], jwk: jose.JWK) -> Authorization:
    challenges = tuple(
        c for c in (_challenge_from_json(d, jwk) for d in data.get("challenges", [])) if c
    )
    return Authorization(
        uri=uri,
        identifier=_identifier_from_json(data.get("identifier", {"value": ""})),
        status=AuthorizationStatus(data.get("status", "unknown")),
        challenges=challenges,
        wildcard=bool(data.get("wildcard", False)),
    )


def _account_from_regr(regr: messages.RegistrationResource) -> AccountResource:
    body = regr.body
    status = getattr(body, "status", None)
    return AccountResource(
        uri=regr.uri,
        status=AccountStatus(getattr(status, "name", status) or "unknown"),
        contacts=tuple(body.contact or ()),
        terms_of_service_agreed=body.terms_of_service_agreed,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class AcmeAuthorityClient(AuthorityClient):
    """:class:`AuthorityClient` backed by :class:`acme.client.ClientV2`.

    Parameters
    ----------
    client:
        A ``ClientV2`` whose network object is bound to the account key.
    jwk:
        The account key as a JWK, used for key authorizations.
    directory_uri:
        The directory the client was discovered from.
    finalize_timeout:
        Seconds to wait for the authority to issue after finalization.

    """

    def __init__(
        self,
        client: acme_client.ClientV2,
        jwk: jose.JWK,
        directory_uri: str,
        *,
        finalize_timeout: float = 90.0,
    ) -> None:
        self._client = client
        self._jwk = jwk
        self._directory_uri = directory_uri
        self._finalize_timeout = finalize_timeout
        self._regr: messages.RegistrationResource | None = None

    @property
    def directory_uri(self) -> str:
        return self._directory_uri

    # -- helpers ------------------------------------------------------------

    async def _call(self, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:  # noqa: ANN401
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except messages.Error as exc:
            raise AuthorityError(exc.detail or str(exc), type=exc.typ) from exc
        except acme_errors.Error as exc:
            raise AuthorityError(str(exc) or type(exc).__name__) from exc

    def _post(self, url: str, obj: jose.JSONDeSerializable | None) -> requests.Response:
        return self._client.net.post(url, obj, new_nonce_url=self._client.directory["newNonce"])

    def _post_as_get(self, url: str) -> requests.Response:
        return self._post(url, None)

    def _require_account(self) -> messages.RegistrationResource:
        if self._regr is None:
            msg = "No account is bound to this client; call new_account() or get_account() first"
            raise RuntimeError(msg)
        return self._regr

    # -- account ------------------------------------------------------------

    async def get_terms_of_service(self) -> str | None:
        meta = getattr(self._client.directory, "meta", None)
        if meta is None:
            return None
        return getattr(meta, "terms_of_service", None)

    async def new_account(self, email: str, *, terms_agreed: bool) -> AccountResource:
        registration = messages.NewRegistration.from_data(
            email=email,
            terms_of_service_agreed=terms_agreed,
        )
        try:
            regr = await self._call(self._client.new_account, registration)
        except AuthorityError as exc:
            conflict = exc.__cause__
            if not isinstance(conflict, acme_errors.ConflictError):
                raise
            log.info("Account already exists at %s; reusing it", conflict.location)
            existing = messages.RegistrationResource(uri=conflict.location, body=registration)
            regr = await self._call(self._client.query_registration, existing)
        self._regr = regr
        return _account_from_regr(regr)

    async def get_account(self) -> AccountResource:
        lookup = messages.RegistrationResource(uri=None, body=messages.Registration())
        regr = await self._call(self._client.query_registration, lookup)
        self._regr = regr
        return _account_from_regr(regr)

    async def agree_to_terms(self) -> AccountResource:
        regr = self._require_account()
        update = regr.body.update(terms_of_service_agreed=True)
        regr = await self._call(self._client.update_registration, regr, update)
        self._regr = regr
        return _account_from_regr(regr)

    # -- orders -------------------------------------------------------------

    def _list_orders_sync(self) -> list[Order]:
        regr = self._require_account()
        orders_url = self._post_as_get(regr.uri).json().get("orders")
        if not orders_url:
            return []

        order_urls: list[str] = []
        next_url: str | None = orders_url
        while next_url:
            response = self._post_as_get(next_url)
            order_urls.extend(response.json().get("orders", []))
            next_url = response.links.get("next", {}).get("url")

        return [self._fetch_order_sync(url) for url in order_urls]

    def _fetch_order_sync(self, url: str) -> Order:
        return _order_from_json(url, self._post_as_get(url).json())

    async def list_orders(self) -> list[Order]:
        return await self._call(self._list_orders_sync)

    def _new_order_sync(self, domains: Sequence[str]) -> Order:
        new_order = messages.NewOrder(
            identifiers=[
                messages.Identifier(typ=messages.IDENTIFIER_FQDN, value=domain)
                for domain in domains
            ],
        )
        response = self._post(self._client.directory["newOrder"], new_order)
        return _order_from_json(response.headers.get("Location", ""), response.json())

    async def new_order(self, domains: Sequence[str]) -> Order:
        return await self._call(self._new_order_sync, list(domains))

    # -- authorizations -----------------------------------------------------

    def _get_authorization_sync(self, uri: str) -> Authorization:
        return _authorization_from_json(uri, self._post_as_get(uri).json(), self._jwk)

    async def get_authorization(self, uri: str) -> Authorization:
        return await self._call(self._get_authorization_sync, uri)

    async def answer_challenge(self, challenge: Challenge) -> None:
        # The response body is the empty JSON object; keyAuthorization is
        # stripped from the payload by the acme library.
        response = acme_challenges.KeyAuthorizationChallengeResponse(
            key_authorization=challenge.key_authorization,
        )
        await self._call(self._post, challenge.uri, response)

    # -- finalization -------------------------------------------------------

    def _finalize_sync(self, order: Order, csr_pem: bytes) -> str:
        orderr = messages.OrderResource(
            uri=order.uri,
            body=messages.Order(
                finalize=order.finalize,
                authorizations=list(order.authorizations),
            ),
            authorizations=[],
            csr_pem=csr_pem,
        )
        deadline = datetime.datetime.now() + datetime.timedelta(seconds=self._finalize_timeout)
        finalized = self._client.finalize_order(orderr, deadline)
        return finalized.fullchain_pem

    async def finalize_order(self, order: Order, csr_pem: bytes) -> str:
        if not order.finalize:
            msg = f"Order {order.uri} has no finalize URL"
            raise AuthorityError(msg)
        return await self._call(self._finalize_sync, order, csr_pem)


class AcmeConnector(AuthorityConnector):
    """Discovers an ACME directory and binds clients to account keys.

    Parameters
    ----------
    directory_uri:
        The authority's directory URL.
    user_agent:
        ``User-Agent`` header sent with every request.
    verify_ssl:
        Whether to verify the authority's TLS certificate.
    timeout_seconds:
        Per-request network timeout.
    finalize_timeout:
        Seconds to wait for issuance after finalization.

    """

    def __init__(
        self,
        directory_uri: str,
        *,
        user_agent: str = "autocert",
        verify_ssl: bool = True,
        timeout_seconds: int = 45,
        finalize_timeout: float = 90.0,
    ) -> None:
        self._directory_uri = directory_uri
        self._user_agent = user_agent
        self._verify_ssl = verify_ssl
        self._timeout = timeout_seconds
        self._finalize_timeout = finalize_timeout

    @property
    def directory_uri(self) -> str:
        return self._directory_uri

    def _connect_sync(self, account_key: PrivateKeyTypes) -> AcmeAuthorityClient:
        jwk, alg = jwk_for_key(account_key)
        net = acme_client.ClientNetwork(
            jwk,
            alg=alg,
            verify_ssl=self._verify_ssl,
            user_agent=self._user_agent,
            timeout=self._timeout,
        )
        directory = acme_client.ClientV2.get_directory(self._directory_uri, net)
        return AcmeAuthorityClient(
            acme_client.ClientV2(directory, net),
            jwk,
            self._directory_uri,
            finalize_timeout=self._finalize_timeout,
        )

    async def connect(self, account_key: PrivateKeyTypes) -> AuthorityClient:
        try:
            return await asyncio.to_thread(self._connect_sync, account_key)
        except messages.Error as exc:
            raise AuthorityError(exc.detail or str(exc), type=exc.typ) from exc
