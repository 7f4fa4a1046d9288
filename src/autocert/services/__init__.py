"""Issuance services.

Services receive the :class:`~autocert.accounts.manager.AccountSession`
explicitly and hold no state between calls.
"""

from autocert.services.authorization import AuthorizationValidator, ChallengeUnavailableError
from autocert.services.certificate import CertificateAssembler
from autocert.services.factory import CertificateFactory, IssuanceError
from autocert.services.order import OrderResolver

__all__ = [
    "AuthorizationValidator",
    "CertificateAssembler",
    "CertificateFactory",
    "ChallengeUnavailableError",
    "IssuanceError",
    "OrderResolver",
]
