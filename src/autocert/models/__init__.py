"""Entity models for autocert.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from autocert.models.account import Account
from autocert.models.authorization import Authorization
from autocert.models.certificate import CertificateBundle
from autocert.models.challenge import Challenge, ProblemDetail
from autocert.models.order import Identifier, Order

__all__ = [
    "Account",
    "Authorization",
    "CertificateBundle",
    "Challenge",
    "Identifier",
    "Order",
    "ProblemDetail",
]
