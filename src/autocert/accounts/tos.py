"""Terms-of-service acceptance policy."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class TermsOfServiceNotAcceptedError(Exception):
    """The authority requires terms that the operator has not accepted."""

    def __init__(self, tos_uri: str) -> None:
        self.tos_uri = tos_uri
        self.detail = (
            f"The certificate authority requires agreement to its terms of service "
            f"at {tos_uri}; set accept_terms_of_service to true to agree"
        )
        super().__init__(self.detail)


class TermsOfServiceChecker:
    """Decides whether autocert may agree to the authority's terms.

    Parameters
    ----------
    accept_terms_of_service:
        The operator's standing agreement, from configuration.

    """

    def __init__(self, *, accept_terms_of_service: bool) -> None:
        self._accepted = accept_terms_of_service

    def ensure_terms_are_accepted(self, tos_uri: str | None) -> None:
        """Raise :class:`TermsOfServiceNotAcceptedError` unless agreement is allowed."""
        if tos_uri is None:
            return
        if not self._accepted:
            raise TermsOfServiceNotAcceptedError(tos_uri)
        log.info("Agreeing to terms of service at %s", tos_uri)
